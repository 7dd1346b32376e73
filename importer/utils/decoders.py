"""字节解码：quoted-printable 与 base64"""
import base64
import re

_SOFT_BREAK_RE = re.compile(rb'=\r?\n')
_HEX_ESCAPE_RE = re.compile(rb'=([0-9A-Fa-f]{2})')
_WS_RE = re.compile(r'\s+')

def decode_quoted_printable(text: str) -> str:
    """
    宽松的 quoted-printable 解码

    先删除软换行 (=\\r?\\n)，再把 =XX 替换为对应字节。
    不合法的转义保持原样，从不报错。
    """
    raw = text.encode('utf-8', errors='surrogateescape')
    raw = _SOFT_BREAK_RE.sub(b'', raw)
    raw = _HEX_ESCAPE_RE.sub(lambda m: bytes([int(m.group(1), 16)]), raw)
    return raw.decode('utf-8', errors='replace')

def decode_base64(text: str) -> bytes:
    """解码 base64（忽略空白），损坏的数据抛出 binascii.Error"""
    return base64.b64decode(_WS_RE.sub('', text))
