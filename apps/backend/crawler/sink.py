"""
Result sinks: append-only destinations for job records and URL stubs.
"""
import json
import logging
import threading
from pathlib import Path
from typing import Dict, List, Union

logger = logging.getLogger(__name__)


class ResultSink:
    """Append-only destination for crawl results. The crawler never reads back."""

    def push(self, item: Dict):
        raise NotImplementedError

    def close(self):
        pass


class MemorySink(ResultSink):
    """Keeps results in a list."""

    def __init__(self):
        self.items: List[Dict] = []
        self._lock = threading.Lock()

    def push(self, item: Dict):
        with self._lock:
            self.items.append(dict(item))

    def __len__(self):
        return len(self.items)


class JsonLinesSink(ResultSink):
    """Appends one JSON document per line to a file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._count = 0
        logger.info(f"[sink] Writing results to {self.path}")

    def push(self, item: Dict):
        line = json.dumps(item, ensure_ascii=False)
        with self._lock:
            with open(self.path, 'a', encoding='utf-8') as f:
                f.write(line + '\n')
            self._count += 1

    @property
    def count(self) -> int:
        return self._count
