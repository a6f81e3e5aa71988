from typing import Literal, Optional, Union
from pydantic import BaseModel, Field, ValidationInfo, field_validator
from pathlib import Path
import yaml


class OpenAIGenerationConfig(BaseModel):
    type: Literal["openai"]
    config: dict = Field(default_factory=lambda: {
        "model": "gpt-4o-mini",
        "temperature": 0.2,
        "max_tokens": 2000
    })


class OpenAIEmbeddingConfig(BaseModel):
    type: Literal["openai"]
    config: dict = Field(default_factory=lambda: {
        "model": "text-embedding-3-small",
        "dimension": 768
    })


class PineconeEmbeddingConfig(BaseModel):
    type: Literal["pinecone"]
    config: dict = Field(default_factory=lambda: {
        "model": "multilingual-e5-large",
        "dimension": 1024
    })


class RateLimitConfig(BaseModel):
    generation_rpm: int = Field(default=15, ge=1)
    embedding_rpm: int = Field(default=1500, ge=1)
    window_seconds: float = Field(default=60.0, gt=0)


class IndexingConfig(BaseModel):
    batch_size: int = Field(default=10, ge=1)
    max_files: int = Field(default=50, ge=1)
    max_chars_per_file: int = Field(default=8000, ge=1)
    min_file_chars: int = Field(default=50, ge=0)
    max_file_chars: int = Field(default=50_000, ge=1)


class CommitConfig(BaseModel):
    max_commits: int = Field(default=10, ge=1)
    parallelism: int = Field(default=2, ge=1)
    max_diff_chars: int = Field(default=40_000, ge=1)


class RetryConfig(BaseModel):
    max_attempts: int = Field(default=3, ge=1)
    fallback_delay: float = Field(default=60.0, ge=0)
    max_delay: float = Field(default=300.0, ge=0)


class RepolensConfig(BaseModel):
    # api keys
    openai_api_key: Optional[str] = None
    pinecone_api_key: Optional[str] = None
    github_token: Optional[str] = None

    # relational store (postgresql+psycopg://... in production)
    database_url: str = "sqlite:///./repolens.db"

    # ai provider configuration
    generation_provider: OpenAIGenerationConfig = Field(
        default_factory=lambda: OpenAIGenerationConfig(type="openai"),
        validate_default=True
    )
    embedding_provider: Union[OpenAIEmbeddingConfig, PineconeEmbeddingConfig] = Field(
        default_factory=lambda: OpenAIEmbeddingConfig(type="openai"),
        validate_default=True
    )

    # pipeline tuning
    rate_limits: RateLimitConfig = Field(default_factory=RateLimitConfig)
    indexing: IndexingConfig = Field(default_factory=IndexingConfig)
    commits: CommitConfig = Field(default_factory=CommitConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)

    @field_validator("generation_provider")
    @classmethod
    def validate_generation_keys(cls, v, info: ValidationInfo):
        if v.type == "openai" and not info.data.get("openai_api_key"):
            raise ValueError(
                "OpenAI API key is required when using OpenAI generation provider")
        return v

    @field_validator("embedding_provider")
    @classmethod
    def validate_embedding_keys(cls, v, info: ValidationInfo):
        if v.type == "openai" and not info.data.get("openai_api_key"):
            raise ValueError(
                "OpenAI API key is required when using OpenAI embedding provider")
        if v.type == "pinecone" and not info.data.get("pinecone_api_key"):
            raise ValueError(
                "Pinecone API key is required when using Pinecone embedding provider")
        return v

    @field_validator("indexing")
    @classmethod
    def validate_indexing(cls, v):
        if v.min_file_chars >= v.max_file_chars:
            raise ValueError(
                "indexing.min_file_chars must be lower than indexing.max_file_chars")
        return v

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "RepolensConfig":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with path.open("r") as f:
            config_dict = yaml.safe_load(f) or {}

        return cls.model_validate(config_dict)

    def to_yaml(self, path: Union[str, Path]) -> None:
        path = Path(path)
        with path.open("w") as f:
            yaml.dump(self.model_dump(), f)
