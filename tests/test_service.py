import threading

import pytest

from autodocs.config import AutoDocsConfig
from autodocs.declarations import ClassDeclaration, Decorator, MethodDeclaration, SourceUnit
from autodocs.service import AutoDocsService


def _units(path: str = "users"):
    service = ClassDeclaration(
        name="UsersController",
        decorators=[Decorator("Controller", args=[path])],
        methods=[MethodDeclaration(name="list", decorators=[Decorator("Get")])],
    )
    return [SourceUnit(path="src/users/users.controller.ts", classes=[service])]


def _config(**kwargs) -> AutoDocsConfig:
    return AutoDocsConfig(title="API", version="1.0", **kwargs)


class TestLifecycle:
    def test_initialize_builds_document(self):
        service = AutoDocsService(_config(), _units)
        assert service.initialize()
        assert service.passes == 1
        assert list(service.document()["paths"]) == ["users"]
        assert [s.name for s in service.services] == ["UsersController"]

    def test_scan_on_start_disabled_builds_lazily(self):
        service = AutoDocsService(_config(scan_on_start=False), _units)
        assert not service.initialize()
        assert service.passes == 0
        assert "users" in service.document()["paths"]
        assert service.passes == 1

    def test_document_is_a_copy(self):
        service = AutoDocsService(_config(), _units)
        service.initialize()
        service.document()["paths"].clear()
        assert service.document()["paths"]

    def test_spec_json(self):
        service = AutoDocsService(_config(), _units)
        assert '"openapi": "3.0.0"' in service.spec_json()

    def test_notify_change_requires_watch_mode(self):
        service = AutoDocsService(_config(), _units)
        assert not service.notify_change("src/users/users.controller.ts")
        assert service.passes == 0

        watching = AutoDocsService(_config(watch_mode=True), _units)
        assert watching.notify_change("src/users/users.controller.ts")
        assert watching.passes == 1


class TestRebuilds:
    def test_signals_during_pass_coalesce_into_one_follow_up(self):
        calls = []

        def loader():
            calls.append(len(calls))
            if len(calls) == 1:
                # Three signals while the first pass is in flight
                assert service.request_rebuild() is False
                assert service.request_rebuild() is False
                assert service.request_rebuild() is False
            return _units()

        service = AutoDocsService(_config(), loader)
        assert service.request_rebuild() is True
        assert service.passes == 2
        assert len(calls) == 2

    def test_failed_pass_keeps_previous_document(self):
        state = {"fail": False}

        def loader():
            if state["fail"]:
                raise RuntimeError("parse failure")
            return _units()

        service = AutoDocsService(_config(), loader)
        service.initialize()
        before = service.document()

        state["fail"] = True
        with pytest.raises(RuntimeError):
            service.request_rebuild()
        assert service.document() == before
        assert service.passes == 1

        state["fail"] = False
        assert service.request_rebuild() is True
        assert service.passes == 2

    def test_concurrent_requests_never_overlap(self):
        active = []
        overlaps = []
        gate = threading.Event()

        def loader():
            active.append(1)
            if len(active) > 1:
                overlaps.append(len(active))
            gate.wait(0.05)
            active.pop()
            return _units()

        service = AutoDocsService(_config(), loader)
        threads = [threading.Thread(target=service.request_rebuild) for _ in range(5)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert overlaps == []
        assert 1 <= service.passes <= 5

    def test_document_waits_for_in_flight_first_pass(self):
        started = threading.Event()
        release = threading.Event()

        def loader():
            started.set()
            release.wait(5)
            return _units()

        service = AutoDocsService(_config(), loader)
        builder = threading.Thread(target=service.request_rebuild)
        builder.start()
        assert started.wait(5)

        results = []
        reader = threading.Thread(target=lambda: results.append(service.document()))
        reader.start()
        reader.join(0.1)
        assert reader.is_alive()

        release.set()
        builder.join(5)
        reader.join(5)
        assert list(results[0]["paths"]) == ["users"]
        assert service.wait_idle(timeout=1)
