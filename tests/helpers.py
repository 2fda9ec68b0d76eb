"""PDF and token builders shared by the tests."""

import io

import jwt
from pypdf import PdfWriter
from pypdf.generic import DecodedStreamObject, DictionaryObject, NameObject

SIGNING_KEY = "test-secret"


def build_pdf(pages):
    """
    Build a PDF in memory. ``pages`` is a list of pages, each a list of
    text lines drawn top to bottom in Helvetica.
    """
    writer = PdfWriter()
    font = DictionaryObject({
        NameObject("/Type"): NameObject("/Font"),
        NameObject("/Subtype"): NameObject("/Type1"),
        NameObject("/BaseFont"): NameObject("/Helvetica"),
    })
    for lines in pages:
        page = writer.add_blank_page(width=612, height=792)
        ops = ["BT", "/F1 12 Tf", "72 720 Td"]
        for i, line in enumerate(lines):
            if i:
                ops.append("0 -16 Td")
            escaped = line.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")
            ops.append(f"({escaped}) Tj")
        ops.append("ET")
        stream = DecodedStreamObject()
        stream.set_data("\n".join(ops).encode("latin-1"))
        page[NameObject("/Contents")] = writer._add_object(stream)
        page[NameObject("/Resources")] = DictionaryObject({
            NameObject("/Font"): DictionaryObject({NameObject("/F1"): font}),
        })
    buf = io.BytesIO()
    writer.write(buf)
    return buf.getvalue()


def make_token(owner, secret=SIGNING_KEY):
    return jwt.encode({"id": owner, "email": f"{owner.lower()}@example.com"}, secret, algorithm="HS256")
