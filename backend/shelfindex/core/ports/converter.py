from __future__ import annotations
from abc import ABC, abstractmethod


class IConverter(ABC):
    @abstractmethod
    def convert(self, path: str) -> str:
        """Return the extracted text for `path` or raise ConversionError."""
        ...
