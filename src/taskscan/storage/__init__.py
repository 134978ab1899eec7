from taskscan.storage.base import TaskStore
from taskscan.storage.memory import MemoryTaskStore
from taskscan.storage.sqlite import SQLiteTaskStore

__all__ = ["TaskStore", "MemoryTaskStore", "SQLiteTaskStore"]
