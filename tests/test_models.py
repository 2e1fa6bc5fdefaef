# SPDX-License-Identifier: MIT
"""Tests for persisted and configuration models."""

import pytest
from pydantic import TypeAdapter, ValidationError

from models import (
    AppConfig,
    BackendConfig,
    DomainCounter,
    GitHubBackendConfig,
    LocalBackendConfig,
    Record,
    ScopeMeta,
)


def test_counter_uses_camel_case_on_disk() -> None:
    counter = DomainCounter.model_validate_json('{"nextPath": 2, "nextQuery": 5}')
    assert (counter.next_path, counter.next_query) == (2, 5)
    assert counter.model_dump(by_alias=True) == {"nextPath": 2, "nextQuery": 5}


def test_counter_rejects_negative_values() -> None:
    with pytest.raises(ValidationError):
        DomainCounter(next_path=-1)


def test_persisted_models_ignore_unknown_keys() -> None:
    meta = ScopeMeta.model_validate_json(
        '{"id": "3", "key": "https://example.com", "legacy": true}'
    )
    assert meta.id == "3"


def test_record_accepts_textual_reference() -> None:
    record = Record(original="u", canonical="u", issue="PR-4")
    assert record.issue == "PR-4"
    assert record.by == "unknown"


def test_backend_union_dispatches_on_kind() -> None:
    adapter = TypeAdapter(BackendConfig)
    assert isinstance(adapter.validate_python({"kind": "local"}), LocalBackendConfig)
    github = adapter.validate_python({"kind": "github", "owner": "a", "repo": "b"})
    assert isinstance(github, GitHubBackendConfig)
    with pytest.raises(ValidationError):
        adapter.validate_python({"kind": "ftp"})


def test_github_token_is_hidden() -> None:
    config = GitHubBackendConfig(owner="a", repo="b", token="secret")
    assert "secret" not in repr(config)
    assert config.token.get_secret_value() == "secret"


def test_app_config_forbids_unknown_keys() -> None:
    with pytest.raises(ValidationError):
        AppConfig.model_validate({"model": "gpt"})
