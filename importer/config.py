"""配置文件"""
from pathlib import Path

class Config:
    """全局配置"""
    # 日志配置
    LOG_LEVEL = 'INFO'
    LOG_FILE = None
    LOG_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'
    
    # 导入大小限制
    ENEX_MAX_SIZE = 10 * 1024 * 1024
    ONENOTE_MAX_SIZE = 50 * 1024 * 1024  # ZIP 可能较大
    
    # 资源存储
    UPLOAD_DIR = Path('uploads')
    UPLOAD_URL_PREFIX = '/uploads'
    DEFAULT_MIME = 'application/octet-stream'
    
    # 笔记本/笔记默认值
    IMPORTS_NOTEBOOK_NAME = 'Imports'
    UNTITLED_TITLE = 'Untitled Import'
    
    # HTML转换配置
    HTML_PARSER = 'lxml'
    DEFAULT_LINE_HEIGHT = '1.5'
    ONENOTE_LINE_HEIGHT = 'normal'
    
    # 时间格式
    TIMESTAMP_FORMAT = '%Y%m%dT%H%M%SZ'
    
    # 文件名非法字符
    INVALID_FILENAME_CHARS = '<>:"/\\|?*'
