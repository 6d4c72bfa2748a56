"""并发执行器模块。

提供有界并发的任务执行功能，支持分组和工作池两种调度方式。
"""

import logging
from collections.abc import Callable, Iterator, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Generic, TypeVar

from ..models.compression_config import SchedulingMode


logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class ConcurrentExecutor(Generic[T, R]):
    """有界并发执行器

    任务在工作线程中执行，结果在调用线程中按完成顺序收集，
    因此 on_result 回调总在调用线程中触发。
    """

    def __init__(
        self,
        max_workers: int = 4,
        mode: SchedulingMode = SchedulingMode.GROUP,
    ):
        """初始化并发执行器

        Args:
            max_workers: 最大并发数，分组模式下也是每组大小
            mode: 调度方式
        """
        self.max_workers = max_workers
        self.mode = mode

    def execute_tasks(
        self,
        items: Sequence[T],
        task_function: Callable[[T], R],
        error_function: Callable[[T, Exception], R],
        on_result: Callable[[R], None] | None = None,
    ) -> list[R]:
        """执行并发任务

        Args:
            items: 任务输入
            task_function: 在工作线程中执行的任务函数
            error_function: 任务抛出异常时生成替代结果
            on_result: 每个任务完成时在调用线程中回调

        Returns:
            list: 与输入顺序一致的结果列表
        """
        if not items:
            return []

        results: dict[int, R] = {}

        with ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="pib-worker"
        ) as executor:
            for batch in self._iter_batches(items):
                # 提交任务阶段
                future_to_index = self._submit_tasks(
                    executor,
                    items,
                    batch,
                    task_function,
                    error_function,
                    results,
                    on_result,
                )

                # 收集结果阶段，分组模式下整组完成后才进入下一组
                self._collect_results(
                    future_to_index, items, error_function, results, on_result
                )

        return [results[index] for index in range(len(items))]

    def _iter_batches(self, items: Sequence[T]) -> Iterator[range]:
        """按调度方式切分任务下标"""
        if self.mode == SchedulingMode.POOL:
            yield range(len(items))
            return

        for start in range(0, len(items), self.max_workers):
            yield range(start, min(start + self.max_workers, len(items)))

    def _submit_tasks(
        self,
        executor: ThreadPoolExecutor,
        items: Sequence[T],
        batch: range,
        task_function: Callable[[T], R],
        error_function: Callable[[T, Exception], R],
        results: dict[int, R],
        on_result: Callable[[R], None] | None,
    ) -> dict[Future[R], int]:
        """提交任务到执行器"""
        future_to_index: dict[Future[R], int] = {}

        for index in batch:
            try:
                future = executor.submit(task_function, items[index])
                future_to_index[future] = index
            except RuntimeError as e:
                logger.error(f"任务提交失败: #{index} - {e}")
                self._record(index, error_function(items[index], e), results, on_result)

        return future_to_index

    def _collect_results(
        self,
        future_to_index: dict[Future[R], int],
        items: Sequence[T],
        error_function: Callable[[T, Exception], R],
        results: dict[int, R],
        on_result: Callable[[R], None] | None,
    ) -> None:
        """收集任务执行结果"""
        for future in as_completed(future_to_index):
            index = future_to_index[future]
            try:
                result = future.result()
            except Exception as e:
                result = error_function(items[index], e)

            self._record(index, result, results, on_result)

    @staticmethod
    def _record(
        index: int,
        result: R,
        results: dict[int, R],
        on_result: Callable[[R], None] | None,
    ) -> None:
        results[index] = result
        if on_result is not None:
            on_result(result)
