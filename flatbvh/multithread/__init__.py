from flatbvh.multithread.task_pool import TaskPool

__all__ = ["TaskPool"]
