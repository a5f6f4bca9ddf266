from __future__ import annotations

from pathlib import Path

from shiptag.core.result import Err, Ok
from shiptag.output.console import MockConsole
from shiptag.services.release.model import ManifestVersion
from shiptag.services.release.tagging import ensure_tag
from shiptag.test.fakes import HEAD, FakeTagNamespace

FOUND = ManifestVersion(manifest=Path("Cargo.toml"), version="1.3.0", tag_name="v1.3.0")


def test_creates_and_pushes_new_tag() -> None:
    ns = FakeTagNamespace(remote={"v1.2.0"})
    console = MockConsole()

    result = ensure_tag(FOUND, namespace=ns, console=console)

    assert isinstance(result, Ok)
    assert result.value.state == "pushed"
    assert result.value.tag_exists is False
    assert result.value.commit == HEAD
    assert ns.created == [("v1.3.0", "Release version 1.3.0", HEAD)]
    assert ns.remote == {"v1.2.0", "v1.3.0"}
    assert console.find("OK tag v1.3.0 pushed")


def test_second_run_is_a_no_op() -> None:
    ns = FakeTagNamespace(remote={"v1.2.0"})

    first = ensure_tag(FOUND, namespace=ns, console=MockConsole())
    console = MockConsole()
    second = ensure_tag(FOUND, namespace=ns, console=console)

    assert isinstance(first, Ok) and first.value.state == "pushed"
    assert isinstance(second, Ok) and second.value.state == "exists"
    assert second.value.tag_exists is True
    assert len(ns.created) == 1
    assert ns.pushed == ["v1.3.0"]
    assert console.find("already exists on remote")


def test_exists_only_for_exact_name() -> None:
    ns = FakeTagNamespace(remote={"v1.3.0.1", "v1.3.0-rc1"})

    result = ensure_tag(FOUND, namespace=ns, console=MockConsole())

    assert isinstance(result, Ok)
    assert result.value.state == "pushed"


def test_list_failure_creates_nothing() -> None:
    ns = FakeTagNamespace(fail_list=True)

    result = ensure_tag(FOUND, namespace=ns, console=MockConsole())

    assert isinstance(result, Err)
    assert result.error.tag == "v1.3.0"
    assert "could not read from remote" in (result.error.hint or "")
    assert ns.created == []


def test_push_failure_rolls_back_local_tag() -> None:
    ns = FakeTagNamespace(fail_push=True)

    result = ensure_tag(FOUND, namespace=ns, console=MockConsole())

    assert isinstance(result, Err)
    assert result.error.local_tag_created is True
    assert result.error.local_tag_removed is True
    assert "v1.3.0" not in ns.local
    assert "v1.3.0" not in ns.remote


def test_push_failure_without_rollback_keeps_local_tag() -> None:
    ns = FakeTagNamespace(fail_push=True)

    result = ensure_tag(
        FOUND, namespace=ns, console=MockConsole(), rollback_on_push_failure=False
    )

    assert isinstance(result, Err)
    assert result.error.local_tag_removed is False
    assert "v1.3.0" in ns.local


def test_leftover_local_tag_is_pushed_not_recreated() -> None:
    ns = FakeTagNamespace(local={"v1.3.0"})
    console = MockConsole()

    result = ensure_tag(FOUND, namespace=ns, console=console)

    assert isinstance(result, Ok)
    assert result.value.state == "pushed"
    assert ns.created == []
    assert ns.pushed == ["v1.3.0"]
    assert console.find("exists locally but not on remote")


def test_leftover_local_tag_keeps_its_own_commit() -> None:
    older = "feedface" * 5
    ns = FakeTagNamespace(local={"v1.3.0"}, tag_commits={"v1.3.0": older})

    result = ensure_tag(FOUND, namespace=ns, console=MockConsole())

    assert isinstance(result, Ok)
    assert result.value.commit == older
    assert result.value.commit != ns.head


def test_create_failure() -> None:
    ns = FakeTagNamespace(fail_create=True)

    result = ensure_tag(FOUND, namespace=ns, console=MockConsole())

    assert isinstance(result, Err)
    assert result.error.local_tag_created is False
    assert ns.pushed == []


def test_concurrent_push_of_same_tag_counts_as_exists() -> None:
    ns = FakeTagNamespace(race_on_push=True)

    result = ensure_tag(FOUND, namespace=ns, console=MockConsole())

    assert isinstance(result, Ok)
    assert result.value.state == "exists"
    assert "v1.3.0" not in ns.local


def test_dry_run_touches_nothing() -> None:
    ns = FakeTagNamespace()
    console = MockConsole()

    result = ensure_tag(FOUND, namespace=ns, console=console, dry_run=True)

    assert isinstance(result, Ok)
    assert result.value.state == "pushed"
    assert ns.created == []
    assert ns.remote == set()
    assert console.find("git tag -a v1.3.0")


def test_custom_message_template() -> None:
    ns = FakeTagNamespace()

    ensure_tag(FOUND, namespace=ns, console=MockConsole(), message_template="devbox {version}")

    assert ns.created[0][1] == "devbox 1.3.0"
