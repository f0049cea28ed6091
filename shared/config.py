"""
Configuration management for services.

Deployment settings (credentials, endpoints, backends) come from the
environment, optionally seeded from a ``.env`` file at the repository root.
Policy values (size thresholds, TTLs, debounce and retry timings) live in
``config/pipeline.yaml`` and can be overridden per value with
``PIPELINE_FLAG_<DOTTED_PATH>`` environment variables.
"""

import json
import os
from typing import Any

import yaml

from dotenv import load_dotenv

ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
DEFAULT_PIPELINE_PATH = os.path.join(ROOT_DIR, "config", "pipeline.yaml")
PIPELINE_FLAG_PREFIX = "PIPELINE_FLAG_"


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: list[str]) -> list[str]:
    """Read a JSON array or a comma-separated list."""
    raw = os.getenv(name)
    if not raw:
        return list(default)
    if raw.lstrip().startswith("["):
        return [str(item) for item in json.loads(raw)]
    return [item.strip() for item in raw.split(",") if item.strip()]


class ServiceConfig:
    """Environment-backed settings plus YAML policy values."""

    def __init__(self) -> None:
        load_dotenv(dotenv_path=os.path.join(ROOT_DIR, ".env"), override=False)
        self.config: dict[str, Any] = {}
        self.pipeline_config: dict[str, Any] = {}
        self.pipeline_config_path = os.getenv("PIPELINE_CONFIG_PATH", DEFAULT_PIPELINE_PATH)
        self.reload()

    def load_from_env(self) -> None:
        redis_url = os.getenv("REDIS_URL")
        self.config = {
            # AI extraction
            "openai_api_key": os.getenv("OPENAI_API_KEY") or os.getenv("AI_API_KEY"),
            "use_azure_openai": _env_flag("USE_AZURE_OPENAI"),
            "azure_openai_key": os.getenv("AZURE_OPENAI_KEY"),
            "azure_openai_endpoint": os.getenv("AZURE_OPENAI_ENDPOINT"),
            "azure_openai_deployment": os.getenv("AZURE_OPENAI_DEPLOYMENT"),
            # Parse jobs
            "redis_url": redis_url,
            "job_store_backend": os.getenv("JOB_STORE_BACKEND") or ("redis" if redis_url else "memory"),
            # Drafts
            "drafts_api_url": os.getenv("DRAFTS_API_URL", "http://localhost:3000"),
            "drafts_api_token": os.getenv("DRAFTS_API_TOKEN"),
            "local_drafts_dir": os.getenv("LOCAL_DRAFTS_DIR", "./.drafts"),
            # HTTP / runtime
            "allowed_origins": _env_list("ALLOWED_ORIGINS", ["*"]),
            "debug": _env_flag("DEBUG"),
            "log_level": os.getenv("LOG_LEVEL", "INFO"),
        }

    def get(self, key: str, default: Any = None) -> Any:
        """Return a setting; unset (None) values yield ``default``."""
        value = self.config.get(key)
        return default if value is None else value

    def set(self, key: str, value: Any) -> None:
        self.config[key] = value

    def reload(self) -> None:
        """Re-read the environment and the pipeline YAML."""
        self.load_from_env()
        self.load_pipeline_config()

    def load_pipeline_config(self) -> None:
        path = os.path.abspath(self.pipeline_config_path)
        if not os.path.exists(path):
            self.pipeline_config = {}
            return
        with open(path, "r", encoding="utf-8") as stream:
            data = yaml.safe_load(stream) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Pipeline config {path} must be a mapping, got {type(data).__name__}")
        self.pipeline_config = data

    def set_pipeline_config(self, pipeline_config: dict[str, Any]) -> None:
        """Replace the policy values (useful for tests)."""
        self.pipeline_config = pipeline_config

    def get_pipeline_value(self, path: str, default: Any = None) -> Any:
        """Resolve a dotted policy path such as ``drafts.retry_delays``.

        ``PIPELINE_FLAG_DRAFTS_RETRY_DELAYS`` takes precedence over the YAML value.
        """
        override = os.getenv(PIPELINE_FLAG_PREFIX + path.replace(".", "_").upper())
        if override is not None:
            return self._coerce_env_value(override, default)

        node: Any = self.pipeline_config
        for part in path.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return default if node is None else node

    @staticmethod
    def _coerce_env_value(raw: str, default: Any) -> Any:
        """Interpret an override string as bool, number or JSON array where it looks like one."""
        value = raw.strip()
        if not value:
            return default
        if value.lower() in {"true", "false"}:
            return value.lower() == "true"
        if value.startswith("["):
            try:
                return json.loads(value)
            except ValueError:
                return raw
        try:
            return int(value)
        except ValueError:
            pass
        try:
            return float(value)
        except ValueError:
            return raw


# Global configuration instance
config = ServiceConfig()
