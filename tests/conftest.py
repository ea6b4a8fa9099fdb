# tests/conftest.py
"""Shared test fixtures and helpers.

Fixtures:
- upload_files: FileSupport built around the UploadedFile test double
- coercion_options: CoercionOptions with file support enabled
- memory_storage: Fresh in-process raw session store
- profile_schema: Object schema used by session tests

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import os
from dataclasses import dataclass

import pytest
from hypothesis import Phase, Verbosity, settings

from sessionkit.core.coercion import CoercionOptions, FileSupport
from sessionkit.core.schema import Array, Boolean, Number, Object, String
from sessionkit.core.storage import MemorySessionStorage

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
)
settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
)
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


@dataclass
class UploadedFile:
    """Minimal stand-in for a multipart upload: a name and a byte payload."""

    name: str
    content: bytes = b""

    @property
    def size(self) -> int:
        return len(self.content)


def make_upload_support() -> FileSupport:
    return FileSupport(file_type=UploadedFile, empty_factory=lambda: UploadedFile(""))


@pytest.fixture
def upload_files() -> FileSupport:
    return make_upload_support()


@pytest.fixture
def coercion_options(upload_files: FileSupport) -> CoercionOptions:
    return CoercionOptions(files=upload_files)


@pytest.fixture
def memory_storage() -> MemorySessionStorage:
    return MemorySessionStorage()


@pytest.fixture
def profile_schema() -> Object:
    return Object(
        {
            "name": String().optional(),
            "visits": Number().default(0),
            "admin": Boolean().optional(),
            "tags": Array(String()).default(factory=list),
        }
    )
