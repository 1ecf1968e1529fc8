from __future__ import annotations

import pydantic as p
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from scoresync.model import DeploymentEnvironment

from .base import BaseSecrets
from .source import YAMLSecretsSource


class CanvasSecrets(BaseSecrets):
    """Canvas API secrets."""

    access_token: p.Secret[str]


class Secrets(BaseSecrets):
    root: p.AnyUrl
    env: DeploymentEnvironment

    canvas: CanvasSecrets | None = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, env_settings, YAMLSecretsSource(settings_cls)
