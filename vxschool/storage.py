# -*- coding: utf-8 -*-
"""
Хранилище JSON-документов сайта.

Каждый документ (заявки, настройки, аналитика, спам) лежит в отдельном
JSON-файле в DATA_DIR. Чтение всегда идёт с диска, запись полностью
переписывает файл через временный файл и os.replace.

Цикл чтение-изменение-запись одного документа защищён asyncio.Lock,
свой для каждого вида документа.
"""

import asyncio
import json
import logging
import os
import tempfile
import time
from contextlib import asynccontextmanager
from enum import Enum
from pathlib import Path
from typing import Any, AsyncIterator, Union

from vxschool.models.settings import SiteSettings

logger = logging.getLogger("vxschool.storage")


class DocumentKind(str, Enum):
    """Виды документов хранилища (имя = имя файла без .json)."""
    CONTACTS = "contacts"
    SETTINGS = "settings"
    ANALYTICS = "analytics"
    SPAM_CONTACTS = "spam_contacts"


class StorageError(Exception):
    """Базовая ошибка хранилища."""

    def __init__(self, kind: DocumentKind, message: str):
        super().__init__(f"{kind.value}: {message}")
        self.kind = kind


class DocumentParseError(StorageError):
    """Файл документа содержит некорректный JSON."""


class DocumentFormatError(StorageError):
    """JSON корректный, но структура документа не та, что ожидается."""


class DocumentWriteError(StorageError):
    """Не удалось записать документ (нет места, нет прав и т.п.)."""


def default_document(kind: DocumentKind) -> Any:
    """Возвращает документ по умолчанию для первого запуска."""
    if kind is DocumentKind.SETTINGS:
        return SiteSettings().model_dump(mode="json", by_alias=True, exclude_none=True)
    if kind is DocumentKind.ANALYTICS:
        return {"visits": [], "sources": {}, "uniqueVisitors": {}}
    return []


class FileStore:
    """
    Файловое хранилище документов.

    Пример:
        store = FileStore("data")
        contacts = await store.load(DocumentKind.CONTACTS)

        async with store.mutate(DocumentKind.CONTACTS) as contacts:
            contacts.append(entry)
    """

    def __init__(self, data_dir: Union[str, Path]) -> None:
        self.data_dir = Path(data_dir)
        self._locks: dict[DocumentKind, asyncio.Lock] = {}

    def path_for(self, kind: DocumentKind) -> Path:
        return self.data_dir / f"{kind.value}.json"

    def ensure_defaults(self) -> None:
        """Создаёт директорию данных и отсутствующие документы."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        for kind in DocumentKind:
            if not self.path_for(kind).exists():
                self._write(kind, default_document(kind))
                logger.info(f"Создан документ по умолчанию: {self.path_for(kind)}")

    async def load(self, kind: DocumentKind) -> Any:
        """
        Читает документ с диска.

        Raises:
            DocumentParseError: если файл содержит некорректный JSON
            StorageError: если файл не удалось прочитать
        """
        async with self._lock(kind):
            return self._read(kind)

    async def save(self, kind: DocumentKind, document: Any) -> None:
        """
        Полностью перезаписывает документ.

        Raises:
            DocumentWriteError: если запись не удалась
        """
        async with self._lock(kind):
            self._write(kind, document)

    @asynccontextmanager
    async def mutate(self, kind: DocumentKind) -> AsyncIterator[Any]:
        """
        Чтение-изменение-запись под блокировкой документа.

        Документ изменяется на месте внутри блока и сохраняется при
        нормальном выходе. Если блок выбросил исключение, файл не трогается.
        """
        async with self._lock(kind):
            document = self._read(kind)
            yield document
            self._write(kind, document)

    async def backup(self, kind: DocumentKind) -> Path:
        """Сохраняет копию документа с меткой времени рядом с оригиналом."""
        async with self._lock(kind):
            return self._write_backup(kind, self._read(kind))

    async def clear(self, kind: DocumentKind) -> Path:
        """
        Делает резервную копию документа и сбрасывает его к значению по умолчанию.

        Returns:
            Путь к файлу резервной копии
        """
        async with self._lock(kind):
            backup_path = self._write_backup(kind, self._read(kind))
            self._write(kind, default_document(kind))
            return backup_path

    # -------------------- внутренние helpers --------------------

    def _lock(self, kind: DocumentKind) -> asyncio.Lock:
        lock = self._locks.get(kind)
        if lock is None:
            lock = self._locks[kind] = asyncio.Lock()
        return lock

    def _read(self, kind: DocumentKind) -> Any:
        path = self.path_for(kind)
        if not path.exists():
            document = default_document(kind)
            self._write(kind, document)
            return document

        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(kind, f"не удалось прочитать {path}: {e}") from e

        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise DocumentParseError(kind, f"некорректный JSON в {path}: {e}") from e

    def _write(self, kind: DocumentKind, document: Any) -> None:
        self._dump(kind, self.path_for(kind), document)

    def _write_backup(self, kind: DocumentKind, document: Any) -> Path:
        backup_path = self.data_dir / f"{kind.value}_backup_{int(time.time() * 1000)}.json"
        self._dump(kind, backup_path, document)
        return backup_path

    def _dump(self, kind: DocumentKind, path: Path, document: Any) -> None:
        tmp_name = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=path.parent,
                prefix=f".{path.stem}.",
                suffix=".tmp",
                delete=False,
            ) as fh:
                tmp_name = fh.name
                json.dump(document, fh, ensure_ascii=False, indent=2)
            os.replace(tmp_name, path)
        except OSError as e:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise DocumentWriteError(kind, f"не удалось записать {path}: {e}") from e
