"""Stand-ins shared by the unit tests."""

from typing import Any, Dict


class DummyConfig:
    def __init__(self, data: Dict[str, Any]):
        self.data = data

    def get(self, key, default=None):
        return self.data.get(key, default)
