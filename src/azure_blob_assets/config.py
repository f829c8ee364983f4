import io
import os
import ZConfig


_SCHEMA_PATH = os.path.join(os.path.dirname(__file__), "schema.xml")


class AzureBlobProviderFactory:
    """ZConfig factory for AzureBlobProvider."""

    def __init__(self, config):
        self.config = config
        self.name = config.getSectionName()

    def open(self, event_publisher=None, extension_policy=None):
        from azure_blob_assets.azureclient import AzureBlobStore
        from azure_blob_assets.policy import ExtensionPolicy
        from azure_blob_assets.provider import AzureBlobProvider

        config = self.config
        store = AzureBlobStore(
            config.connection_string,
            copy_poll_interval=config.copy_poll_interval,
        )
        if extension_policy is None:
            extension_policy = ExtensionPolicy(
                allowed=config.allowed_extensions,
                blocked=config.blocked_extensions,
            )
        return AzureBlobProvider(
            store,
            extension_policy=extension_policy,
            event_publisher=event_publisher,
            cdn_url=config.cdn_url,
            allow_blob_public_access=config.allow_blob_public_access,
            root_path=config.root_path,
            max_workers=config.max_workers,
        )


def load_schema():
    with open(_SCHEMA_PATH) as f:
        return ZConfig.loadSchemaFile(f)


def factory_from_file(f):
    config, _handler = ZConfig.loadConfigFile(load_schema(), f)
    return config.azureblob


def factory_from_string(text):
    return factory_from_file(io.StringIO(text))


def provider_from_string(text, **kwargs):
    return factory_from_string(text).open(**kwargs)
