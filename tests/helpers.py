import os

from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, YamlConfigSettingsSource

from driftsync.bootstrap.config.settings import DriftSyncConfig

NODE_A = "nodeaaaa"
NODE_B = "nodebbbb"


class FakeDriftConfig(DriftSyncConfig, BaseSettings):
    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=os.environ["TEST_DRIFTSYNCCONFIG"]),
        )


def fixed_bytes(value: bytes):
    def source(n: int) -> bytes:
        return value[:n]
    return source
