"""MHT/MHTML (MIME) 解析器"""
import binascii
import re
from dataclasses import dataclass, field
from typing import Dict, Tuple

from ..models import ResourceEntry
from ..utils.decoders import decode_base64, decode_quoted_printable
from ..utils.helpers import basename
from ..utils.logger import get_logger

logger = get_logger()

_CONTENT_TYPE_RE = re.compile(r'Content-Type:\s*([^\r\n;]+)', re.I)
_ENCODING_RE = re.compile(r'Content-Transfer-Encoding:\s*([^\r\n]+)', re.I)
_LOCATION_RE = re.compile(r'Content-Location:\s*([^\r\n]+)', re.I)
_BOUNDARY_RE = re.compile(r'boundary="?([^"\r\n;]+)"?', re.I)

@dataclass
class MhtDocument:
    """MHT 解析结果：HTML 正文 + 按 Content-Location / 文件名索引的资源"""
    html: str = ''
    resources: Dict[str, ResourceEntry] = field(default_factory=dict)

def _split_headers(raw: str) -> Tuple[str, str]:
    """按第一个空行拆分头部与正文"""
    end = raw.find('\r\n\r\n')
    if end == -1:
        end = raw.find('\n\n')
    if end == -1:
        return '', raw
    return raw[:end], raw[end:].lstrip('\r\n')

def _header(pattern: re.Pattern, headers: str) -> str:
    match = pattern.search(headers)
    return match.group(1).strip() if match else ''

class MhtParser:
    """
    MHT 解析器

    multipart 消息按 boundary 拆分：text/html 部分作为正文，image/* 部分
    作为资源；非 multipart 时整个正文就是 HTML。从不抛出异常，
    缺失或无法解析的 HTML 部分得到空正文。
    """

    def __init__(self, raw: str):
        self.raw = raw or ''

    def parse(self) -> MhtDocument:
        """解析MHT文本"""
        try:
            return self._parse()
        except Exception as e:
            logger.warning(f"MHT解析失败，使用空正文: {e}")
            return MhtDocument()

    def _parse(self) -> MhtDocument:
        top_headers, top_body = _split_headers(self.raw)
        content_type = _header(_CONTENT_TYPE_RE, top_headers).lower()
        boundary = _header(_BOUNDARY_RE, top_headers)

        if 'multipart/' in content_type and boundary:
            return self._parse_multipart(top_body, boundary)

        # 单部分：正文即 HTML
        encoding = _header(_ENCODING_RE, top_headers).lower()
        html = decode_quoted_printable(top_body) if encoding == 'quoted-printable' else top_body
        return MhtDocument(html=html)

    def _parse_multipart(self, body: str, boundary: str) -> MhtDocument:
        document = MhtDocument()

        for part in body.split(f'--{boundary}'):
            trimmed = part.strip()
            # 跳过前导内容与结束标记
            if not trimmed or trimmed == '--':
                continue

            headers, part_body = _split_headers(trimmed)
            if not headers:
                continue

            part_type = _header(_CONTENT_TYPE_RE, headers).lower()
            encoding = _header(_ENCODING_RE, headers).lower()
            location = _header(_LOCATION_RE, headers)

            if part_type.startswith('text/html'):
                document.html = (decode_quoted_printable(part_body)
                                 if encoding == 'quoted-printable' else part_body)
            elif part_type.startswith('image/'):
                self._add_resource(document, part_type, encoding, location, part_body)

        logger.debug(f"MHT解析完成: html={len(document.html)} 字符, 资源键={len(document.resources)}")
        return document

    def _add_resource(self, document: MhtDocument, mime: str, encoding: str,
                      location: str, body: str) -> None:
        """登记图片部分，同时以完整地址和文件名作为键"""
        if not location:
            return

        if encoding == 'base64':
            try:
                data = decode_base64(body)
            except (binascii.Error, ValueError) as e:
                logger.warning(f"跳过损坏的MHT资源 {location}: {e}")
                return
        else:
            data = body.encode('utf-8', errors='surrogateescape')

        entry = ResourceEntry(key=location, mime=mime, data=data)
        document.resources[location] = entry
        filename = basename(location)
        if filename:
            document.resources[filename] = ResourceEntry(key=filename, mime=mime, data=data)

def parse_mht(raw: str) -> MhtDocument:
    """解析MHT文本的入口函数"""
    return MhtParser(raw).parse()
