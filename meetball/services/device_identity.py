from __future__ import annotations

import logging
from typing import Optional

from ..config.loader import get_local_storage_path
from ..data.local_storage import JsonFileStorage, LocalStorage
from ..utils.identifiers import SlugGenerator

logger = logging.getLogger(__name__)

DEVICE_ID_STORAGE_KEY = "meetball:device-id:v1"


class DeviceIdentityProvider:
    """
    Lazily creates and remembers this device's pseudo-identity.

    The id correlates a participant's own submissions; it grants nothing.
    One provider is built by the composition root and shared by reference.
    """

    def __init__(
        self,
        storage: LocalStorage,
        generator: Optional[SlugGenerator] = None,
        storage_key: str = DEVICE_ID_STORAGE_KEY,
    ):
        self._storage = storage
        self._generator = generator or SlugGenerator()
        self._storage_key = storage_key
        self._device_id: Optional[str] = None

    @classmethod
    def from_config(cls) -> "DeviceIdentityProvider":
        return cls(JsonFileStorage(get_local_storage_path()))

    def ensure_device_id(self) -> str:
        if self._device_id:
            return self._device_id
        existing = self._storage.get_item(self._storage_key)
        if existing and existing.strip():
            self._device_id = existing
            return existing
        created = self._generator.generate_device_id()
        self._storage.set_item(self._storage_key, created)
        logger.info("Created device identity")
        self._device_id = created
        return created
