"""附件资源写入器"""
import io
from pathlib import Path
from typing import Optional, Tuple, Union

from PIL import Image, UnidentifiedImageError

from .base import BaseWriter
from ..config import Config
from ..exceptions import ResourceWriteError
from ..models import StoredResource
from ..utils.logger import get_logger

logger = get_logger()

def probe_image_size(data: bytes) -> Tuple[Optional[int], Optional[int]]:
    """用 Pillow 读取图片尺寸，无法识别时返回 (None, None)"""
    try:
        with Image.open(io.BytesIO(data)) as image:
            return image.size
    except (UnidentifiedImageError, OSError, ValueError):
        return None, None

class ResourceWriter(BaseWriter):
    """
    把资源写入上传目录

    每个资源使用调用方生成的唯一存储键作为文件名，原始文件名只作为展示信息。
    """
    
    def __init__(self, output: Union[str, Path, None] = None, url_prefix: Optional[str] = None):
        super().__init__(output if output is not None else Config.UPLOAD_DIR)
        self.url_prefix = (url_prefix or Config.UPLOAD_URL_PREFIX).rstrip('/')
    
    def url_for(self, storage_key: str) -> str:
        return f"{self.url_prefix}/{storage_key}"
    
    def owns(self, src: str) -> bool:
        """地址是否已指向持久化的资源"""
        return src.startswith(self.url_prefix + '/')
    
    def write(self, data: bytes, mime: str, display_name: str, storage_key: str,
              width: Optional[int] = None, height: Optional[int] = None) -> StoredResource:
        """写入资源并返回附件记录"""
        path = self.output / storage_key
        try:
            with open(path, 'wb') as f:
                f.write(data)
        except OSError as e:
            raise ResourceWriteError(f"写入资源失败 {storage_key}: {e}") from e
        
        if mime.startswith('image/') and (width is None or height is None):
            width, height = probe_image_size(data)
        
        logger.debug(f"已写入资源: {storage_key} ({mime}, {len(data)} 字节)")
        return StoredResource(
            storage_key=storage_key,
            url=self.url_for(storage_key),
            mime_type=mime,
            size=len(data),
            filename=display_name,
            width=width,
            height=height,
        )
    
    def discard(self, stored: StoredResource) -> None:
        """删除已写入的资源文件（尽力而为）"""
        path = self.output / stored.storage_key
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"删除资源失败 {stored.storage_key}: {e}")
