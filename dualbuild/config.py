import os
import yaml
from joserfc.jwk import RSAKey
from pathlib import Path
from pydantic import BeforeValidator, AfterValidator, Field, field_validator
from pydantic_core.core_schema import ValidationInfo
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Annotated

from dualbuild.const import (
    ARCH_MACHINES,
    DEFAULT_BINFMT_IMAGE,
    DEFAULT_BUILDER_NAME,
    DEFAULT_CROSS_RECIPE,
    DEFAULT_IMAGE_NAME,
    DEFAULT_NATIVE_RECIPE,
)


def _default_data_dir() -> Path:
    data_home = os.getenv('XDG_DATA_HOME') or os.path.expanduser('~/.local/share')
    return Path(data_home) / 'dualbuild'


class Config(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix='DUALBUILD_',
        env_file='.env',
        extra='ignore',
        arbitrary_types_allowed=True,
    )

    host: str = '127.0.0.1'
    port: int = 8000
    debug: bool = False

    branch: str = 'main'
    foreign_arch: str = 'arm64'
    image_name: str = DEFAULT_IMAGE_NAME
    native_recipe: str = DEFAULT_NATIVE_RECIPE
    cross_recipe: str = DEFAULT_CROSS_RECIPE
    context_dir: str = '.'
    builder_name: str = DEFAULT_BUILDER_NAME
    binfmt_image: str = DEFAULT_BINFMT_IMAGE
    docker: str = 'docker'

    data_dir: Annotated[Path, AfterValidator(lambda path: path.absolute())] = (
        _default_data_dir()
    )
    repos_dir: Path = Field(default=None, validate_default=True)

    gh_app_id: int | None = None
    gh_key: (
        Annotated[RSAKey, BeforeValidator(lambda data: RSAKey.import_key(data))] | None
    ) = None
    webhook_secret: str | None = None
    check_name: str = 'dualbuild'

    # noinspection PyNestedDecorators
    @field_validator('foreign_arch')
    @classmethod
    def v_foreign_arch(cls, v: str):
        v = v.removeprefix('linux/')
        if v not in ARCH_MACHINES:
            raise ValueError(
                f'unsupported architecture {v!r}, expected one of '
                + ', '.join(ARCH_MACHINES)
            )
        return v

    # noinspection PyNestedDecorators
    @field_validator('repos_dir', mode='before')
    @classmethod
    def default_dirs(cls, v: Path | None, info: ValidationInfo):
        if 'data_dir' not in info.data:
            # data_dir errors are reported on their own
            return ''
        if v is None:
            return info.data['data_dir'] / info.field_name.removesuffix('_dir')
        return v

    @property
    def foreign_platform(self) -> str:
        return f'linux/{self.foreign_arch}'


def load_config() -> Config:
    config_home = Path(
        os.getenv('XDG_CONFIG_HOME') or os.path.expanduser('~/.config')
    )
    config_file = config_home / 'dualbuild' / 'config.yml'
    if config_file.is_file():
        config_values = yaml.safe_load(config_file.read_text()) or {}
    else:
        config_values = {}
    return Config(**config_values)


config = load_config()

__all__ = ['Config', 'config', 'load_config']
