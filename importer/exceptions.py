"""导入流程的异常类型"""


class ImporterError(Exception):
    """所有导入异常的基类"""


class SizeLimitExceeded(ImporterError):
    """上传文件超过格式大小上限（整个请求失败）"""


class InvalidFormatError(ImporterError):
    """扩展名不受支持，或缺少必需的顶层结构（整个请求失败）"""


class ConversionError(ImporterError):
    """HTML 转文档树失败（在转换器内部降级处理）"""


class ResourceWriteError(ImporterError):
    """资源解码或写入磁盘失败"""


class PerNoteImportError(ImporterError):
    """单个笔记导入失败，不影响同批次的其他笔记"""

    def __init__(self, title: str, message: str):
        super().__init__(f"{title}: {message}")
        self.title = title
