"""MHT 解析测试"""
import base64

from importer.parsers.mht_parser import MhtParser, parse_mht

from .samples import mht_document, png_bytes

class TestSinglePart:
    def test_quoted_printable_body(self):
        raw = (
            'Content-Type: text/html; charset="utf-8"\r\n'
            'Content-Transfer-Encoding: quoted-printable\r\n'
            '\r\n'
            '<p class=3D"a">caf=C3=A9=\r\n ok</p>'
        )
        document = parse_mht(raw)
        assert document.html == '<p class="a">café ok</p>'
        assert document.resources == {}

    def test_plain_body_kept_verbatim(self):
        raw = 'Content-Type: text/html\n\n<p>a=20b</p>'
        assert parse_mht(raw).html == '<p>a=20b</p>'

    def test_no_headers(self):
        assert parse_mht('<p>x</p>').html == '<p>x</p>'

    def test_never_raises(self):
        document = MhtParser(None).parse()
        assert document.html == ''
        assert document.resources == {}

class TestMultipart:
    def test_html_and_images(self):
        image = png_bytes()
        raw = mht_document(
            '<p style="color:red">Hi</p>',
            {'file:///C:/export/page_files/image001.png': image},
        ).decode('utf-8')

        document = parse_mht(raw)

        assert document.html == '<p style="color:red">Hi</p>'
        full = document.resources['file:///C:/export/page_files/image001.png']
        short = document.resources['image001.png']
        assert full.data == image
        assert short.data == image
        assert full.mime == 'image/png'

    def test_corrupt_image_part_skipped(self):
        raw = (
            'Content-Type: multipart/related; boundary="B"\r\n\r\n'
            '--B\r\nContent-Type: text/html\r\n\r\n<p>ok</p>\r\n'
            '--B\r\nContent-Type: image/png\r\nContent-Transfer-Encoding: base64\r\n'
            'Content-Location: broken.png\r\n\r\nabc\r\n'
            '--B--'
        )
        document = parse_mht(raw)
        assert document.html == '<p>ok</p>'
        assert document.resources == {}

    def test_missing_html_part_gives_empty_payload(self):
        image = base64.b64encode(b'data').decode('ascii')
        raw = (
            'Content-Type: multipart/related; boundary=B\n\n'
            '--B\nContent-Type: image/gif\nContent-Transfer-Encoding: base64\n'
            f'Content-Location: a.gif\n\n{image}\n'
            '--B--'
        )
        document = parse_mht(raw)
        assert document.html == ''
        assert document.resources['a.gif'].data == b'data'

    def test_parts_without_headers_ignored(self):
        raw = (
            'Content-Type: multipart/related; boundary="B"\r\n\r\n'
            'preamble text\r\n'
            '--B\r\nContent-Type: text/html\r\n\r\n<p>body</p>\r\n'
            '--B--\r\n'
        )
        assert parse_mht(raw).html == '<p>body</p>'
