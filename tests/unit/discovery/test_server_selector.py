"""Tests for ServerSelector and the path predicate."""

import pytest

from opencode_bridge.discovery.models import ValidatedServer
from opencode_bridge.discovery.selector import ServerSelector, is_within
from opencode_bridge.errors import NoneInScopeError
from tests.helpers.fake_inspector import FakeProcessInspector

CALLER_PID = 500


class TestIsWithin:
    @pytest.mark.parametrize(
        "directory,root",
        [("/a/b", "/a/b"), ("/a/b/c", "/a/b"), ("/a/b/", "/a/b"), ("/a/b/c/../d", "/a/b")],
    )
    def test_inside(self, directory: str, root: str) -> None:
        assert is_within(directory, root)

    @pytest.mark.parametrize("directory,root", [("/x/y", "/a/b"), ("/a/bc", "/a/b"), ("/a", "/a/b")])
    def test_outside(self, directory: str, root: str) -> None:
        assert not is_within(directory, root)


class TestIsDescendant:
    def test_direct_child(self) -> None:
        selector = ServerSelector(FakeProcessInspector(parents={100: CALLER_PID}), caller_pid=CALLER_PID)

        assert selector.is_descendant(100)

    def test_grandchild(self) -> None:
        inspector = FakeProcessInspector(parents={100: 90, 90: CALLER_PID})

        assert ServerSelector(inspector, caller_pid=CALLER_PID).is_descendant(100)

    def test_stops_at_init(self) -> None:
        inspector = FakeProcessInspector(parents={100: 1, 1: 0})

        assert not ServerSelector(inspector, caller_pid=CALLER_PID).is_descendant(100)
        assert inspector.parent_calls == [100]

    def test_unknown_parent(self) -> None:
        assert not ServerSelector(FakeProcessInspector(), caller_pid=CALLER_PID).is_descendant(100)

    def test_walk_is_bounded(self) -> None:
        # A cycle in the parent table must not loop forever.
        inspector = FakeProcessInspector(parents={100: 101, 101: 100})
        selector = ServerSelector(inspector, caller_pid=CALLER_PID, max_depth=10)

        assert not selector.is_descendant(100)
        assert len(inspector.parent_calls) == 10


class TestSelect:
    def test_picks_server_inside_caller_directory(self) -> None:
        servers = [
            ValidatedServer(pid=100, port=4096, directory="/x/y"),
            ValidatedServer(pid=200, port=4200, directory="/a/b"),
        ]
        selector = ServerSelector(FakeProcessInspector(), caller_pid=CALLER_PID)

        assert selector.select(servers, "/a/b").port == 4200

    def test_prefix_lookalike_is_not_eligible(self) -> None:
        servers = [ValidatedServer(pid=100, port=4096, directory="/a/bc")]
        selector = ServerSelector(FakeProcessInspector(), caller_pid=CALLER_PID)

        with pytest.raises(NoneInScopeError, match="/a/b"):
            selector.select(servers, "/a/b")

    def test_first_eligible_wins_without_ancestry(self) -> None:
        servers = [
            ValidatedServer(pid=100, port=4096, directory="/a/b"),
            ValidatedServer(pid=200, port=4200, directory="/a/b/sub"),
        ]
        selector = ServerSelector(FakeProcessInspector(), caller_pid=CALLER_PID)

        assert selector.select(servers, "/a/b").port == 4096

    @pytest.mark.parametrize("spawned_first", [True, False])
    def test_spawned_server_wins_regardless_of_order(self, spawned_first: bool) -> None:
        spawned = ValidatedServer(pid=100, port=4096, directory="/a/b")
        other = ValidatedServer(pid=200, port=4200, directory="/a/b")
        servers = [spawned, other] if spawned_first else [other, spawned]
        inspector = FakeProcessInspector(parents={100: CALLER_PID, 200: 1})

        assert ServerSelector(inspector, caller_pid=CALLER_PID).select(servers, "/a/b") == spawned

    def test_spawned_server_outside_directory_is_ignored(self) -> None:
        servers = [
            ValidatedServer(pid=100, port=4096, directory="/x/y"),
            ValidatedServer(pid=200, port=4200, directory="/a/b"),
        ]
        inspector = FakeProcessInspector(parents={100: CALLER_PID})

        assert ServerSelector(inspector, caller_pid=CALLER_PID).select(servers, "/a/b").port == 4200

    def test_empty_list(self) -> None:
        with pytest.raises(NoneInScopeError):
            ServerSelector(FakeProcessInspector(), caller_pid=CALLER_PID).select([], "/a/b")
