"""
Isolated PDF text dump, run as a child process by SubprocessPdfEngine.
Run with: python -m docextract.engines.pdf_text_worker <pdf_path>

Uses PyMuPDF (MuPDF, a different parser from pdfplumber's pdfminer) and
prints one JSON object on its last stdout line: {"ok", "text", "numpages"}.
Pages are separated by a form feed.
"""

import json
import sys

import fitz  # PyMuPDF

PAGE_DELIMITER = "\f"


def dump_text(path: str) -> dict:
    """Return every page's text joined by the page delimiter."""
    doc = fitz.open(path)
    try:
        texts = [page.get_text("text") or "" for page in doc]
    finally:
        doc.close()

    return {"ok": True, "text": PAGE_DELIMITER.join(texts), "numpages": len(texts)}


def main(argv=None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        print(json.dumps({"ok": False, "error": "usage: pdf_text_worker <pdf_path>"}))
        return 2

    try:
        payload = dump_text(args[0])
    except Exception as e:
        print(json.dumps({"ok": False, "error": f"{type(e).__name__}: {e}"}))
        return 1

    print(json.dumps(payload))
    return 0


if __name__ == "__main__":
    sys.exit(main())
