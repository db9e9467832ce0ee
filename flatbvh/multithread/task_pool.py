# flatbvh/multithread/task_pool.py
# ---------------------------------------------------------------
# Пул потоков для пакетных запросов лучей (traverse_many).
# Каждая задача – кусок массива лучей; numba‑ядро обхода
# отпускает GIL, плоский буфер узлов общий и только читается,
# результаты пишутся в непересекающиеся срезы выходных массивов.
# ---------------------------------------------------------------

from concurrent.futures import ThreadPoolExecutor
import queue


class TaskPool:
    """Пул потоков; задачи – callables, результаты собирает wait_all()."""

    def __init__(self, max_workers=None):
        self.executor = ThreadPoolExecutor(max_workers=max_workers,
                                           thread_name_prefix="flatbvh")
        self.pending = queue.Queue()
        self._closed = False

    @staticmethod
    def chunks(count: int, chunk_size: int):
        """Диапазоны (start, stop) кусков по chunk_size элементов."""
        step = max(1, int(chunk_size))
        for start in range(0, count, step):
            yield start, min(start + step, count)

    def submit(self, fn, *args, **kwargs):
        if self._closed:
            raise RuntimeError("[TaskPool] Pool already shut down")
        future = self.executor.submit(fn, *args, **kwargs)
        self.pending.put(future)
        return future

    def wait_all(self):
        """
        Дождаться всех поставленных задач в порядке постановки.
        Исключение из задачи пробрасывается вызывающему.
        """
        results = []
        while not self.pending.empty():
            results.append(self.pending.get().result())
        return results

    def shutdown(self, wait=True):
        self._closed = True
        self.executor.shutdown(wait=wait)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown()
