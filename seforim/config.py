"""Configuration loader for the Seforim import pipeline."""

import os
from pathlib import Path
from typing import Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field


class AppInfo(BaseModel):
    """Application metadata."""

    name: str = "Seforim Import"
    version: str = "1.0.0"
    language: str = "he"


class CorpusConfig(BaseModel):
    """Location and layout of the source corpus export."""

    root: str = "./data/sefaria"
    json_dir: str = "json"
    schemas_dir: str = "schemas"
    links_dir: str = "links"


class ImporterConfig(BaseModel):
    """Worker pool and batching configuration."""

    max_workers: int | None = None  # None = CPU count
    executor: Literal["process", "thread"] = "process"
    line_batch_size: int = 5000
    link_batch_size: int = 2000

    def resolved_workers(self) -> int:
        """Return the worker count, defaulting to the number of CPU cores."""
        return max(self.max_workers or os.cpu_count() or 1, 1)


class ResolutionConfig(BaseModel):
    """Category rules that change how citations are anchored."""

    # Hebrew category fragments (matched by substring)
    paginated_categories: list[str] = Field(default_factory=lambda: ["תלמוד"])
    multi_section_categories: list[str] = Field(
        default_factory=lambda: ["שולחן ערוך", "טור"]
    )
    inline_suppressed_structures: list[str] = Field(
        default_factory=lambda: ["30 Day Cycle"]
    )

    def is_paginated(self, categories: list[str]) -> bool:
        return _matches_any(categories, self.paginated_categories)

    def is_multi_section(self, categories: list[str]) -> bool:
        return _matches_any(categories, self.multi_section_categories)


class StorageConfig(BaseModel):
    """Storage paths configuration."""

    sqlite_path: str = "./db/seforim.db"


class AppConfig(BaseModel):
    """Root application configuration."""

    app: AppInfo = Field(default_factory=AppInfo)
    corpus: CorpusConfig = Field(default_factory=CorpusConfig)
    importer: ImporterConfig = Field(default_factory=ImporterConfig)
    resolution: ResolutionConfig = Field(default_factory=ResolutionConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)


def _matches_any(categories: list[str], fragments: list[str]) -> bool:
    return any(fragment in category for category in categories for fragment in fragments)


def load_config(config_path: str | Path = "config.yaml") -> AppConfig:
    """Load configuration from YAML file and environment variables.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        Fully populated AppConfig instance.
    """
    load_dotenv()

    yaml_data: dict = {}
    config_file = Path(config_path)
    if config_file.exists():
        with open(config_file, encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f) or {}

    config = AppConfig(**yaml_data)

    # Override paths from environment
    corpus_root = os.getenv("SEFORIM_CORPUS_ROOT")
    if corpus_root:
        config.corpus.root = corpus_root
    sqlite_path = os.getenv("SEFORIM_SQLITE_PATH")
    if sqlite_path:
        config.storage.sqlite_path = sqlite_path

    return config
