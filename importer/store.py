"""笔记/笔记本/标签的持久化接口"""
import uuid
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from .models import Note, Notebook, Tag
from .utils.logger import get_logger

logger = get_logger()

class NoteStore(ABC):
    """导入流程依赖的存储接口"""

    @abstractmethod
    def find_notebook(self, user_id: str, notebook_id: Optional[str] = None,
                      name: Optional[str] = None) -> Optional[Notebook]:
        """按 id 或名称查找用户的笔记本；两者都为空时返回用户的第一个笔记本"""
        pass

    @abstractmethod
    def create_notebook(self, user_id: str, name: str) -> Notebook:
        pass

    @abstractmethod
    def find_tag(self, user_id: str, name: str, is_vault: bool) -> Optional[Tag]:
        """名称区分大小写，且按保险库标志隔离"""
        pass

    @abstractmethod
    def create_tag(self, user_id: str, name: str, is_vault: bool) -> Tag:
        pass

    @abstractmethod
    def create_note(self, note: Note) -> Note:
        """原子地创建笔记及其附件与标签；id 重复时返回已存在的笔记"""
        pass

    def find_or_create_tag(self, user_id: str, name: str, is_vault: bool) -> Tag:
        return self.find_tag(user_id, name, is_vault) or self.create_tag(user_id, name, is_vault)

class InMemoryNoteStore(NoteStore):
    """进程内存储，供命令行与测试使用"""

    def __init__(self):
        self.notebooks: List[Notebook] = []
        self.tags: List[Tag] = []
        self.notes: Dict[str, Note] = {}

    def find_notebook(self, user_id: str, notebook_id: Optional[str] = None,
                      name: Optional[str] = None) -> Optional[Notebook]:
        for notebook in self.notebooks:
            if notebook.user_id != user_id:
                continue
            if notebook_id is not None and notebook.id != notebook_id:
                continue
            if name is not None and notebook.name != name:
                continue
            return notebook
        return None

    def create_notebook(self, user_id: str, name: str) -> Notebook:
        notebook = Notebook(id=str(uuid.uuid4()), user_id=user_id, name=name)
        self.notebooks.append(notebook)
        logger.debug(f"创建笔记本: {name}")
        return notebook

    def find_tag(self, user_id: str, name: str, is_vault: bool) -> Optional[Tag]:
        for tag in self.tags:
            if tag.user_id == user_id and tag.name == name and tag.is_vault == is_vault:
                return tag
        return None

    def create_tag(self, user_id: str, name: str, is_vault: bool) -> Tag:
        tag = Tag(id=str(uuid.uuid4()), user_id=user_id, name=name, is_vault=is_vault)
        self.tags.append(tag)
        return tag

    def create_note(self, note: Note) -> Note:
        existing = self.notes.get(note.id)
        if existing is not None:
            logger.debug(f"笔记已存在，返回原记录: {note.id}")
            return existing
        self.notes[note.id] = note
        return note

    def notes_for(self, user_id: str) -> List[Note]:
        return [note for note in self.notes.values() if note.user_id == user_id]
