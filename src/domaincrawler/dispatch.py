"""
Fetch dispatch strategies.

The driver hands a dispatcher a lazy iterator of claimed URLs. Claiming a URL
(limit check, dequeue, visited-insert) happens when the dispatcher pulls from
that iterator, always on the calling thread. When the iterator stops, no new
fetches are issued.
"""
from __future__ import annotations

from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Callable, Dict, Iterable, Iterator, Optional, Tuple, Union

from domaincrawler.fetcher import Page

FetchFn = Callable[[str], Optional[Page]]
Result = Tuple[str, Optional[Page]]


class SequentialDispatcher:
    """One fetch at a time; the next URL is claimed only after the previous result is consumed."""

    workers = 1

    def run(self, fetch: FetchFn, urls: Iterable[str]) -> Iterator[Result]:
        for url in urls:
            yield url, fetch(url)


class ThreadPoolDispatcher:
    """
    Up to ``workers`` fetches in flight, results yielded as they complete.

    A limit hit stops new claims; fetches already running are allowed to finish
    and their results are still yielded.
    """

    def __init__(self, workers: int) -> None:
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")
        self.workers = workers

    def run(self, fetch: FetchFn, urls: Iterable[str]) -> Iterator[Result]:
        claims = iter(urls)
        pending: Dict[Future, str] = {}

        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="fetch") as pool:

            def fill() -> None:
                while len(pending) < self.workers:
                    url = next(claims, None)
                    if url is None:
                        return
                    pending[pool.submit(fetch, url)] = url

            fill()
            while pending:
                done, _ = wait(pending, return_when=FIRST_COMPLETED)
                for future in done:
                    url = pending.pop(future)
                    yield url, future.result()
                fill()


def make_dispatcher(workers: int = 1) -> Union[SequentialDispatcher, ThreadPoolDispatcher]:
    """Sequential for a single worker, a thread pool otherwise."""
    if workers <= 1:
        return SequentialDispatcher()
    return ThreadPoolDispatcher(workers)
