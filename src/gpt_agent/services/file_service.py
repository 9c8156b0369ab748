"""Abstract file service interface."""

from __future__ import annotations

from abc import ABC, abstractmethod


class FileService(ABC):
    @abstractmethod
    def read_file(self, path: str) -> str: ...

    @abstractmethod
    def write_file(self, path: str, content: str) -> None: ...

    @abstractmethod
    def delete_file(self, path: str) -> bool: ...

    @abstractmethod
    def list_files(self) -> list[str]: ...

    @abstractmethod
    def file_exists(self, path: str) -> bool: ...
