from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

import yaml

from legacy_refactor.models import ModelConfig
from legacy_refactor.utils.io import read_text

CREDENTIAL_ENV_VARS: Dict[str, Tuple[str, ...]] = {
    "google": ("GOOGLE_API_KEY", "GEMINI_API_KEY", "API_KEY"),
    "openrouter": ("OPENROUTER_API_KEY",),
}


class CredentialStore:
    """Read-only view over API keys, backed by the process environment."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None) -> None:
        self._environ = environ

    def get(self, provider: str) -> Optional[str]:
        environ = self._environ if self._environ is not None else os.environ
        for name in CREDENTIAL_ENV_VARS.get(provider, ()):
            value = environ.get(name)
            if value:
                return value
        return None


def load_model_config(path: Optional[Path]) -> ModelConfig:
    if path is None:
        return ModelConfig()
    payload = yaml.safe_load(read_text(path)) or {}
    if not isinstance(payload, dict):
        raise ValueError(f"Model config {path} must be a mapping of stage to provider/model.")
    return ModelConfig.from_dict(payload)
