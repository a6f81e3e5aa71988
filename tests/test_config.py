"""Tests for repolens/config.py"""

import pytest
import yaml
from pydantic import ValidationError

from repolens.config import RepolensConfig


def test_defaults():
    config = RepolensConfig(openai_api_key="sk-test")
    assert config.generation_provider.type == "openai"
    assert config.embedding_provider.type == "openai"
    assert config.embedding_provider.config["dimension"] == 768
    assert config.rate_limits.generation_rpm == 15
    assert config.rate_limits.embedding_rpm == 1500
    assert config.indexing.batch_size == 10
    assert config.indexing.max_files == 50
    assert config.commits.max_commits == 10
    assert config.retry.max_attempts == 3


def test_openai_key_required():
    with pytest.raises(ValidationError, match="OpenAI API key is required"):
        RepolensConfig()


def test_pinecone_key_required():
    with pytest.raises(ValidationError, match="Pinecone API key is required"):
        RepolensConfig(openai_api_key="sk-test", embedding_provider={"type": "pinecone"})


def test_pinecone_embeddings():
    config = RepolensConfig(
        openai_api_key="sk-test",
        pinecone_api_key="pc-test",
        embedding_provider={"type": "pinecone"}
    )
    assert config.embedding_provider.type == "pinecone"
    assert config.embedding_provider.config["model"] == "multilingual-e5-large"


def test_file_size_limits_must_be_ordered():
    with pytest.raises(ValidationError):
        RepolensConfig(
            openai_api_key="sk-test",
            indexing={"min_file_chars": 500, "max_file_chars": 100}
        )


def test_rates_must_be_positive():
    with pytest.raises(ValidationError):
        RepolensConfig(openai_api_key="sk-test", rate_limits={"generation_rpm": 0})


def test_from_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump({
        "openai_api_key": "sk-test",
        "github_token": "ghp_test",
        "database_url": "postgresql+psycopg://localhost/repolens",
        "rate_limits": {"generation_rpm": 30},
        "indexing": {"max_files": 100},
    }))

    config = RepolensConfig.from_yaml(path)
    assert config.github_token == "ghp_test"
    assert config.database_url == "postgresql+psycopg://localhost/repolens"
    assert config.rate_limits.generation_rpm == 30
    assert config.rate_limits.embedding_rpm == 1500
    assert config.indexing.max_files == 100


def test_from_yaml_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        RepolensConfig.from_yaml(tmp_path / "missing.yaml")


def test_yaml_round_trip(tmp_path):
    path = tmp_path / "config.yaml"
    config = RepolensConfig(openai_api_key="sk-test", indexing={"batch_size": 5})
    config.to_yaml(path)
    assert RepolensConfig.from_yaml(path) == config
