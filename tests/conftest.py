"""Shared pytest fixtures and configuration."""

from __future__ import annotations

from collections.abc import Callable, Iterable

import pytest

from projectattach.attach import (
    BatchState,
    ProjectDescriptor,
    ResultCode,
    ResultState,
    SelectionEntry,
)
from projectattach.config import AttachSettings


# Register custom markers
def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: fast tests with no external dependencies")
    config.addinivalue_line("markers", "integration: component interaction tests")


class ScriptedAttach:
    """Attach function returning scripted codes and recording every call."""

    def __init__(self, codes: dict[str, ResultCode] | None = None) -> None:
        self.codes = codes or {}
        self.calls: list[tuple[str, bool]] = []

    async def __call__(self, descriptor: ProjectDescriptor, retry: bool) -> ResultCode:
        self.calls.append((descriptor.name, retry))
        return self.codes.get(descriptor.name, ResultCode.SUCCESS)

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.calls]


@pytest.fixture
def fast_settings() -> AttachSettings:
    """Settings with a short poll interval."""
    return AttachSettings(poll_interval=0.01)


@pytest.fixture
def make_descriptor() -> Callable[[str], ProjectDescriptor]:
    """Factory for project descriptors."""

    def _make(name: str) -> ProjectDescriptor:
        slug = name.lower().replace(" ", "")
        return ProjectDescriptor(
            name=name,
            url=f"https://{slug}.example.org/",
            platforms=("x86_64-pc-linux-gnu",),
        )

    return _make


@pytest.fixture
def make_batch(
    make_descriptor: Callable[[str], ProjectDescriptor],
) -> Callable[..., tuple[BatchState, ScriptedAttach]]:
    """Factory for a ready in-memory batch plus its scripted attach function.

    Entries are given as (name, initial state) pairs; codes map project
    names to the code attach returns (SUCCESS otherwise).
    """

    def _make(
        entries: Iterable[tuple[str, ResultState]],
        codes: dict[str, ResultCode] | None = None,
        config_ready: bool = True,
    ) -> tuple[BatchState, ScriptedAttach]:
        attach = ScriptedAttach(codes)
        selected = [
            SelectionEntry(descriptor=make_descriptor(name), result=state)
            for name, state in entries
        ]
        batch = BatchState(selected=selected, attach_func=attach, config_ready=config_ready)
        return batch, attach

    return _make
