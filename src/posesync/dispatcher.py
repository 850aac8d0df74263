"""
Scoring service client and the fixed-interval coordinate dispatcher.
"""

import asyncio
import logging
import math
import threading
from concurrent.futures import ThreadPoolExecutor

import requests

from .errors import ScoringError

logger = logging.getLogger(__name__)


class ScoringClient:
    """
    POSTs {modelCoordinates, videoCoordinates} and returns the numeric
    `similarity` from the response, clamped to [0, 100].

    Without an explicit `session`, each calling thread gets its own
    requests.Session. A session passed in is shared and must be thread-safe.
    """

    def __init__(self, url, timeout=5.0, session=None):
        self.url = url
        self.timeout = float(timeout)
        self.session = session
        self._local = threading.local()
        self._owned = []
        self._lock = threading.Lock()

    def _session(self):
        if self.session is not None:
            return self.session
        s = getattr(self._local, 'session', None)
        if s is None:
            s = requests.Session()
            self._local.session = s
            with self._lock:
                self._owned.append(s)
        return s

    def score(self, payload):
        try:
            resp = self._session().post(self.url, json=payload, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except requests.RequestException as e:
            raise ScoringError(f"request to {self.url} failed: {e}") from e
        except ValueError as e:
            raise ScoringError(f"response from {self.url} is not JSON: {e}") from e

        if not isinstance(data, dict) or 'similarity' not in data:
            raise ScoringError(f"response has no 'similarity' field: {data!r}")
        value = data['similarity']
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ScoringError(f"'similarity' is not a number: {value!r}")
        try:
            value = float(value)
        except OverflowError as e:
            raise ScoringError(f"'similarity' is out of range: {e}") from e
        if not math.isfinite(value):
            raise ScoringError(f"'similarity' is not finite: {value!r}")
        return min(100.0, max(0.0, value))

    def close(self):
        if self.session is not None:
            self.session.close()
        with self._lock:
            owned, self._owned = self._owned, []
        for s in owned:
            s.close()


class CoordinateDispatcher:
    """
    Called from the dispatch timer. Each tick sends whatever samples are
    currently published, regardless of age or emptiness. Failures keep the
    previous score; the next tick is the retry.

    Requests run on the dispatcher's own thread pool so a hanging scorer
    never holds up inference. A response older than the last applied one is
    dropped.
    """

    def __init__(self, client, state, presenter, max_workers=4):
        self.client = client
        self.state = state
        self.presenter = presenter
        self.max_workers = max_workers
        self._mounted = False
        self._generation = 0
        self._seq = 0
        self._applied_seq = 0
        self._tasks = set()
        self._executor = None

        self.requests_issued = 0
        self.successes = 0
        self.failures = 0
        self.out_of_order = 0

    def mount(self):
        self._generation += 1
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=self.max_workers,
                                                thread_name_prefix="posesync-dispatch")
        self._mounted = True

    def unmount(self):
        """Stop issuing, drop queued requests and wait for running ones to return."""
        self._generation += 1
        self._mounted = False
        if self._executor is not None:
            self._executor.shutdown(wait=True, cancel_futures=True)
            self._executor = None

    def _current(self, generation):
        return generation == self._generation and self._mounted

    def tick(self):
        if not self._mounted:
            return False
        payload = self.state.payload()
        self.requests_issued += 1
        self._seq += 1
        task = asyncio.get_running_loop().create_task(
            self._dispatch(payload, self._generation, self._seq, self._executor))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    async def _dispatch(self, payload, generation, seq, executor):
        if not self._current(generation):
            return
        loop = asyncio.get_running_loop()
        try:
            similarity = await loop.run_in_executor(executor, self.client.score, payload)
        except ScoringError as e:
            if self._current(generation):
                self.failures += 1
                logger.warning("[dispatch] scoring failed, keeping score %.2f: %s", self.presenter.score, e)
            return
        except Exception:
            if self._current(generation):
                self.failures += 1
                logger.exception("[dispatch] unexpected error while scoring")
            return
        if not self._current(generation):
            return
        if seq < self._applied_seq:
            self.out_of_order += 1
            logger.debug("[dispatch] response #%d arrived after #%d, dropped", seq, self._applied_seq)
            return
        self._applied_seq = seq
        self.successes += 1
        self.presenter.update(similarity)

    async def drain(self):
        """Wait for requests already issued. Used on shutdown and in tests."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
