"""辅助函数"""
import hashlib
import mimetypes
import posixpath
import re
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import unquote

from ..config import Config

_TAG_RE = re.compile(r'<[^>]*>')
_WS_RE = re.compile(r'\s+')

def sanitize_filename(filename: str) -> str:
    """清理文件名中的非法字符"""
    safe_name = ''.join(
        c if c not in Config.INVALID_FILENAME_CHARS else '_'
        for c in filename
    )
    return safe_name.strip()

def calculate_hash(data: bytes, algorithm: str = 'md5') -> str:
    """计算数据哈希值"""
    hash_obj = hashlib.new(algorithm)
    hash_obj.update(data)
    return hash_obj.hexdigest()

def parse_timestamp(timestamp: Optional[str], default: Optional[datetime] = None) -> Optional[datetime]:
    """解析 ENEX 时间戳（YYYYMMDDTHHMMSSZ，UTC）"""
    if not timestamp or len(timestamp.strip()) < 15:
        return default

    try:
        parsed = datetime.strptime(timestamp.strip()[:15], Config.TIMESTAMP_FORMAT.rstrip('Z'))
    except ValueError:
        return default
    return parsed.replace(tzinfo=timezone.utc)

def mime_subtype(mime_type: str, default: str) -> str:
    """MIME 类型的子类型（image/png -> png），缺失时返回默认值"""
    parts = (mime_type or '').split('/')
    return parts[1].strip() if len(parts) > 1 and parts[1].strip() else default

def guess_mime(filename: str) -> str:
    """根据文件名猜测MIME类型"""
    mime, _ = mimetypes.guess_type(filename)
    return mime or Config.DEFAULT_MIME

def image_mime_from_extension(ext: str) -> str:
    """图片扩展名转MIME（jpg 按 jpeg 处理）"""
    ext = ext.lower() or 'png'
    return f"image/{'jpeg' if ext == 'jpg' else ext}"

def basename(path: str) -> str:
    """URL 或 ZIP 条目路径的最后一段"""
    return path.replace('\\', '/').rstrip('/').split('/')[-1]

def extension_of(path: str) -> str:
    """路径的扩展名（小写，不含点）"""
    return posixpath.splitext(basename(path))[1].lstrip('.').lower()

def stem_of(path: str) -> str:
    """不含扩展名的文件名"""
    return posixpath.splitext(basename(path))[0]

def safe_unquote(value: str) -> str:
    """URL 解码，失败时原样返回"""
    try:
        return unquote(value, errors='strict')
    except UnicodeDecodeError:
        return value

def strip_tags(html: str) -> str:
    """去掉所有标签并折叠空白"""
    return _WS_RE.sub(' ', _TAG_RE.sub(' ', html or '')).strip()
