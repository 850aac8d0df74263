import asyncio
import threading

import pytest
import requests

from conftest import FakeHTTPSession, FakeResponse, HangingHTTPSession
from posesync import dispatcher as dispatcher_module
from posesync.dispatcher import CoordinateDispatcher, ScoringClient
from posesync.errors import ScoringError
from posesync.presenter import CAUTION, CRITICAL, HEALTHY, ScorePresenter
from posesync.state import CoordinateState

URL = "http://scorer.test/api/coordinates"


def _client(*responses, error=None):
    return ScoringClient(URL, timeout=2.0, session=FakeHTTPSession(responses, error=error))


def _run_ticks(dispatcher, n=1):
    async def go():
        dispatcher.mount()
        for _ in range(n):
            dispatcher.tick()
            await dispatcher.drain()

    asyncio.run(go())


def test_request_body_and_timeout():
    client = _client(FakeResponse(200, {"similarity": 64.5}))
    payload = {"modelCoordinates": [[0.0, 1.0, 0.0]], "videoCoordinates": []}
    assert client.score(payload) == 64.5
    post = client.session.posts[0]
    assert post["url"] == URL
    assert post["json"] == payload
    assert post["timeout"] == 2.0


def test_empty_samples_are_sent_as_empty_lists():
    client = _client()
    dispatcher = CoordinateDispatcher(client, CoordinateState(), ScorePresenter())
    _run_ticks(dispatcher)
    assert client.session.posts[0]["json"] == {"modelCoordinates": [], "videoCoordinates": []}


@pytest.mark.parametrize("similarity, band", [(82, HEALTHY), (55, CAUTION), (20, CRITICAL)])
def test_response_updates_presenter(similarity, band):
    presenter = ScorePresenter()
    dispatcher = CoordinateDispatcher(_client(FakeResponse(200, {"similarity": similarity})),
                                      CoordinateState(), presenter)
    _run_ticks(dispatcher)
    assert presenter.score == similarity
    assert presenter.fill == similarity
    assert presenter.band == band
    assert dispatcher.successes == 1


def test_server_error_keeps_previous_score():
    presenter = ScorePresenter()
    client = _client(FakeResponse(200, {"similarity": 82}), FakeResponse(500))
    dispatcher = CoordinateDispatcher(client, CoordinateState(), presenter)
    _run_ticks(dispatcher, n=2)
    assert presenter.score == 82
    assert presenter.band == HEALTHY
    assert dispatcher.failures == 1
    assert dispatcher.requests_issued == 2


def test_network_error_is_a_failure():
    presenter = ScorePresenter(score=33)
    dispatcher = CoordinateDispatcher(_client(error=requests.ConnectionError("refused")),
                                      CoordinateState(), presenter)
    _run_ticks(dispatcher)
    assert presenter.score == 33
    assert dispatcher.failures == 1


def test_sends_current_samples_each_tick():
    state = CoordinateState()
    client = _client()
    dispatcher = CoordinateDispatcher(client, state, ScorePresenter())

    async def go():
        dispatcher.mount()
        state.publish_model([[0, 1, 0]])
        dispatcher.tick()
        await dispatcher.drain()
        state.publish_video([[0.5, 0.5, 0.0]])
        dispatcher.tick()
        await dispatcher.drain()

    asyncio.run(go())
    first, second = (p["json"] for p in client.session.posts)
    assert first == {"modelCoordinates": [[0.0, 1.0, 0.0]], "videoCoordinates": []}
    assert second["videoCoordinates"] == [[0.5, 0.5, 0.0]]


@pytest.mark.parametrize("response", [
    FakeResponse(200, {"score": 10}),
    FakeResponse(200, {"similarity": "high"}),
    FakeResponse(200, {"similarity": True}),
    FakeResponse(200, {"similarity": None}),
    FakeResponse(200, [1, 2, 3]),
    FakeResponse(200, text="not json"),
    FakeResponse(200, text='{"similarity": NaN}'),
])
def test_malformed_responses_raise(response):
    with pytest.raises(ScoringError):
        _client(response).score({"modelCoordinates": [], "videoCoordinates": []})


def test_similarity_is_clamped():
    client = _client(FakeResponse(200, {"similarity": 140}), FakeResponse(200, {"similarity": -3}))
    payload = {"modelCoordinates": [], "videoCoordinates": []}
    assert client.score(payload) == 100.0
    assert client.score(payload) == 0.0


def test_response_after_unmount_is_ignored():
    presenter = ScorePresenter(score=12)
    dispatcher = CoordinateDispatcher(_client(FakeResponse(200, {"similarity": 90})),
                                      CoordinateState(), presenter)

    async def go():
        dispatcher.mount()
        dispatcher.tick()
        dispatcher.unmount()
        await dispatcher.drain()

    asyncio.run(go())
    assert presenter.score == 12
    assert dispatcher.successes == 0


def test_tick_before_mount_sends_nothing():
    client = _client()
    dispatcher = CoordinateDispatcher(client, CoordinateState(), ScorePresenter())
    assert dispatcher.tick() is False
    assert client.session.posts == []


def test_close_closes_session():
    client = _client()
    client.close()
    assert client.session.closed


def test_huge_integer_similarity_is_a_scoring_error():
    with pytest.raises(ScoringError):
        _client(FakeResponse(200, {"similarity": 10 ** 400})).score({"modelCoordinates": [], "videoCoordinates": []})


def test_failure_after_unmount_is_not_counted():
    http = HangingHTTPSession(hang=0.2)
    presenter = ScorePresenter(score=40)
    dispatcher = CoordinateDispatcher(ScoringClient(URL, session=http), CoordinateState(), presenter)

    async def go():
        dispatcher.mount()
        dispatcher.tick()
        while not http.started.is_set():
            await asyncio.sleep(0.005)
        dispatcher.unmount()
        await dispatcher.drain()

    asyncio.run(go())
    assert len(http.posts) == 1
    assert dispatcher.failures == 0
    assert presenter.score == 40


class FirstPostWaits(FakeHTTPSession):
    """The first request blocks until `release` is set; later ones answer at once."""

    def __init__(self, responses):
        super().__init__(responses)
        self.release = threading.Event()
        self.first_started = threading.Event()
        self._first = True

    def post(self, url, json=None, timeout=None):
        with self._lock:
            first, self._first = self._first, False
        if first:
            resp = self.responses.pop(0)
            self.first_started.set()
            self.release.wait(5.0)
            return resp
        return super().post(url, json=json, timeout=timeout)


def test_older_response_does_not_overwrite_newer_score():
    http = FirstPostWaits([FakeResponse(200, {"similarity": 20}), FakeResponse(200, {"similarity": 90})])
    presenter = ScorePresenter()
    dispatcher = CoordinateDispatcher(ScoringClient(URL, session=http), CoordinateState(), presenter)

    async def go():
        dispatcher.mount()
        dispatcher.tick()
        while not http.first_started.is_set():
            await asyncio.sleep(0.005)
        dispatcher.tick()
        while dispatcher.successes < 1:
            await asyncio.sleep(0.005)
        http.release.set()
        await dispatcher.drain()
        dispatcher.unmount()

    asyncio.run(go())
    assert presenter.score == 90
    assert dispatcher.successes == 1
    assert dispatcher.out_of_order == 1


class RecordingSession(FakeHTTPSession):
    created = []

    def __init__(self):
        super().__init__()
        self.thread = threading.get_ident()
        RecordingSession.created.append(self)


def test_each_worker_thread_gets_its_own_session(monkeypatch):
    RecordingSession.created = []
    monkeypatch.setattr(dispatcher_module.requests, "Session", RecordingSession)
    client = ScoringClient(URL)
    payload = {"modelCoordinates": [], "videoCoordinates": []}

    client.score(payload)
    client.score(payload)
    worker = threading.Thread(target=client.score, args=(payload,))
    worker.start()
    worker.join()

    assert len(RecordingSession.created) == 2
    assert RecordingSession.created[0].thread != RecordingSession.created[1].thread
    client.close()
    assert all(s.closed for s in RecordingSession.created)
