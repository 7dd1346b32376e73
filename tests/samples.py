"""测试样本构造函数"""
import base64
import hashlib
import io
import zipfile
from typing import Dict, List, Optional

from PIL import Image

USER_ID = 'user-1'

def png_bytes(width: int = 3, height: int = 2) -> bytes:
    """生成真实的 PNG 图片"""
    buf = io.BytesIO()
    Image.new('RGB', (width, height), (255, 0, 0)).save(buf, format='PNG')
    return buf.getvalue()

def md5_hex(data: bytes) -> str:
    return hashlib.md5(data).hexdigest()

def enex_resource(data: bytes, mime: str = 'image/png', file_name: Optional[str] = None,
                  raw_b64: Optional[str] = None) -> str:
    attrs = ''
    if file_name:
        attrs = f'<resource-attributes><file-name>{file_name}</file-name></resource-attributes>'
    b64 = raw_b64 if raw_b64 is not None else base64.b64encode(data).decode('ascii')
    return f'<resource><data encoding="base64">{b64}</data><mime>{mime}</mime>{attrs}</resource>'

def enex_note(title: str, body: str, tags: Optional[List[str]] = None,
              resources: Optional[List[str]] = None,
              created: str = '20240102T030405Z', updated: str = '20240103T040506Z') -> str:
    content = (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<!DOCTYPE en-note SYSTEM "http://xml.evernote.com/pub/enml2.dtd">'
        f'<en-note>{body}</en-note>'
    )
    tag_xml = ''.join(f'<tag>{tag}</tag>' for tag in (tags or []))
    return (
        f'<note><title>{title}</title><content><![CDATA[{content}]]></content>'
        f'<created>{created}</created><updated>{updated}</updated>'
        f'{tag_xml}{"".join(resources or [])}</note>'
    )

def enex_document(*notes: str) -> bytes:
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<!DOCTYPE en-export SYSTEM "http://xml.evernote.com/pub/evernote-export3.dtd">'
        f'<en-export export-date="20240101T000000Z" application="Evernote">{"".join(notes)}</en-export>'
    ).encode('utf-8')

def mht_document(html: str, images: Optional[Dict[str, bytes]] = None,
                 boundary: str = '----=_NextPart_000') -> bytes:
    """构造 multipart/related 的 MHT，HTML 部分使用 quoted-printable"""
    lines = [
        'MIME-Version: 1.0',
        f'Content-Type: multipart/related; boundary="{boundary}"; type="text/html"',
        '',
        f'--{boundary}',
        'Content-Type: text/html; charset="utf-8"',
        'Content-Transfer-Encoding: quoted-printable',
        'Content-Location: file:///C:/export/page.htm',
        '',
        html.replace('=', '=3D'),
    ]
    for location, data in (images or {}).items():
        lines += [
            f'--{boundary}',
            'Content-Type: image/png',
            'Content-Transfer-Encoding: base64',
            f'Content-Location: {location}',
            '',
            base64.b64encode(data).decode('ascii'),
        ]
    lines.append(f'--{boundary}--')
    return '\r\n'.join(lines).encode('utf-8')

def zip_archive(entries: Dict[str, bytes]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, 'w') as archive:
        for name, data in entries.items():
            archive.writestr(name, data)
    return buf.getvalue()


def damage_stored_entry(archive: bytes, payload: bytes) -> bytes:
    """改写未压缩条目中的一个字节，使其 CRC 校验失败"""
    offset = archive.index(payload)
    flipped = bytes([archive[offset] ^ 0x01])
    return archive[:offset] + flipped + archive[offset + 1:]
