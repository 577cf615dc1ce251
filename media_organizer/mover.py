"""
Модуль для перемещения файлов в структуру каталогов по датам.

Каталог назначения строится из маски профиля (например, Y/Y-m-d),
конфликты имен разрешаются добавлением счетчика _0, _1, ... либо
заменой существующего файла, если это разрешено профилем.
"""

import errno
import hashlib
import os
import shutil
import tempfile
from dataclasses import dataclass
from datetime import date
from enum import Enum
from pathlib import Path
from typing import AbstractSet, Optional, Tuple

from .config_loader import Profile


# Ограничение длины имени файла в большинстве файловых систем
MAX_FILE_NAME_LENGTH = 255
# '_' + счетчик до 4 цифр + '.'
COUNTER_RESERVE = 6
MAX_COLLISION_ATTEMPTS = 10000

MASK_TOKENS = ('Y', 'y', 'm', 'd')


class FileOperationError(Exception):
    """Исключение для ошибок операций с файлами."""
    pass


class MoveFailure(str, Enum):
    """Причина неудачного перемещения."""
    DIRECTORY = 'directory'
    COLLISION = 'collision'
    RENAME = 'rename'


@dataclass(frozen=True)
class MoveOutcome:
    """Результат перемещения: путь назначения либо причина неудачи."""
    source: Path
    destination: Optional[Path] = None
    failure: Optional[MoveFailure] = None
    error: str = ''

    @property
    def ok(self) -> bool:
        return self.failure is None and self.destination is not None

    @classmethod
    def moved(cls, source: Path, destination: Path) -> 'MoveOutcome':
        return cls(source=source, destination=destination)

    @classmethod
    def failed(cls, source: Path, failure: MoveFailure, error: str) -> 'MoveOutcome':
        return cls(source=source, failure=failure, error=error)


def mask_has_date_token(mask: str) -> bool:
    """Проверяет, что маска содержит хотя бы один компонент даты."""
    return any(token in (mask or '') for token in MASK_TOKENS)


def render_mask(mask: str, day: date) -> str:
    """
    Подставляет дату в маску каталога.

    Y - год (4 цифры), y - год (2 цифры), m - месяц, d - день.
    Остальные символы, включая разделители каталогов, переносятся как есть.

    Args:
        mask: Маска, например 'Y/Y-m-d'
        day: Дата

    Returns:
        str: Относительный путь, например '2016/2016-07-05'
    """
    values = {
        'Y': f"{day.year:04d}",
        'y': f"{day.year % 100:02d}",
        'm': f"{day.month:02d}",
        'd': f"{day.day:02d}",
    }
    return ''.join(values.get(char, char) for char in mask)


def split_file_name(name: str) -> Tuple[str, str]:
    """
    Делит имя файла на основу и расширение по последней точке.

    Returns:
        Tuple[str, str]: (основа, расширение без точки)
    """
    base, dot, extension = name.rpartition('.')
    if not dot:
        return name, ''
    return base, extension


def truncate_stem(stem: str, extension: str) -> str:
    """Укорачивает основу имени, оставляя место под счетчик и расширение."""
    limit = max(1, MAX_FILE_NAME_LENGTH - (len(extension) + COUNTER_RESERVE))
    return stem[:limit]


def compose_file_name(stem: str, extension: str) -> str:
    return f"{stem}.{extension}" if extension else stem


def _same_path(first: Path, second: Path) -> bool:
    return os.path.abspath(first) == os.path.abspath(second)


def file_hash(file_path: Path, algorithm: str = 'md5') -> str:
    """
    Вычисляет хеш файла для проверки целостности.

    Args:
        file_path: Путь к файлу
        algorithm: Алгоритм хеширования (md5, sha1, sha256)

    Returns:
        str: Хеш файла в шестнадцатеричном виде
    """
    if algorithm not in ('md5', 'sha1', 'sha256'):
        raise ValueError(f"Неподдерживаемый алгоритм: {algorithm}")

    hasher = hashlib.new(algorithm)
    with open(file_path, 'rb') as f:
        for chunk in iter(lambda: f.read(65536), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


class CollisionSafeMover:
    """Класс для перемещения файлов без случайной перезаписи."""

    def __init__(self, target_directory: Path, target_mask: str, overwrite: bool = False,
                 directory_mode: int = 0o775):
        """
        Инициализация.

        Args:
            target_directory: Родительский каталог назначения
            target_mask: Маска каталога по дате
            overwrite: Заменять существующие файлы
            directory_mode: Права создаваемых каталогов
        """
        self.target_directory = Path(target_directory)
        self.target_mask = target_mask
        self.overwrite = overwrite
        self.directory_mode = directory_mode

    @classmethod
    def for_profile(cls, profile: Profile) -> 'CollisionSafeMover':
        return cls(profile.target_directory, profile.target_mask, profile.overwrite)

    def destination_directory(self, day: date) -> Path:
        """
        Возвращает каталог назначения для даты.

        Ведущие разделители маски отбрасываются, чтобы путь оставался
        внутри target_directory.
        """
        relative = render_mask(self.target_mask, day).lstrip('/\\')
        return self.target_directory / relative

    def _get_unique_path(self, directory: Path, file_name: str,
                         reserved: Optional[AbstractSet[Path]] = None,
                         source: Optional[Path] = None) -> Optional[Path]:
        """
        Подбирает свободный путь в каталоге.

        Args:
            directory: Каталог назначения
            file_name: Исходное имя файла
            reserved: Пути, которые считаются занятыми, хотя на диске их еще нет
            source: Исходный файл; если он уже лежит по целевому пути, путь свободен

        Returns:
            Path или None, если перебраны все MAX_COLLISION_ATTEMPTS вариантов
        """
        reserved = reserved or frozenset()
        stem, extension = split_file_name(file_name)
        stem = truncate_stem(stem, extension)

        target = directory / compose_file_name(stem, extension)
        if source is not None and _same_path(source, target):
            return target
        if self.overwrite or not (os.path.lexists(target) or target in reserved):
            return target

        for counter in range(MAX_COLLISION_ATTEMPTS):
            candidate = directory / compose_file_name(f"{stem}_{counter}", extension)
            if not (os.path.lexists(candidate) or candidate in reserved):
                return candidate

        return None

    def plan(self, source: Path, day: date,
             reserved: Optional[AbstractSet[Path]] = None) -> MoveOutcome:
        """
        Вычисляет путь назначения без изменения файловой системы.

        Args:
            source: Путь к исходному файлу
            day: Дата файла
            reserved: Пути, уже назначенные другим файлам в этом прогоне

        Returns:
            MoveOutcome: Путь, куда был бы перемещен файл, или причина неудачи
        """
        source = Path(source)
        directory = self.destination_directory(day)
        target = self._get_unique_path(directory, source.name, reserved, source)
        if target is None:
            return MoveOutcome.failed(
                source, MoveFailure.COLLISION,
                f"Не найдено свободное имя для {source} (перебрано {MAX_COLLISION_ATTEMPTS:,} вариантов)"
            )
        return MoveOutcome.moved(source, target)

    def move(self, source: Path, day: date) -> MoveOutcome:
        """
        Перемещает файл в каталог по дате.

        Args:
            source: Путь к исходному файлу
            day: Дата файла

        Returns:
            MoveOutcome: Итоговый путь или причина неудачи. Исходный файл
            при неудаче остается на месте
        """
        source = Path(source)
        directory = self.destination_directory(day)

        try:
            directory.mkdir(mode=self.directory_mode, parents=True, exist_ok=True)
        except OSError as e:
            return MoveOutcome.failed(
                source, MoveFailure.DIRECTORY,
                f"Не удалось создать каталог {directory}: {e}"
            )

        if not directory.is_dir() or not os.access(directory, os.W_OK):
            return MoveOutcome.failed(
                source, MoveFailure.DIRECTORY,
                f"Каталог назначения не существует или недоступен для записи: {directory}"
            )

        target = self._get_unique_path(directory, source.name, source=source)
        if target is None:
            return MoveOutcome.failed(
                source, MoveFailure.COLLISION,
                f"Не найдено свободное имя для {source} (перебрано {MAX_COLLISION_ATTEMPTS:,} вариантов)"
            )

        if _same_path(source, target):
            # Файл уже на своем месте
            return MoveOutcome.moved(source, target)

        try:
            self._relocate(source, target)
        except (OSError, FileOperationError) as e:
            return MoveOutcome.failed(
                source, MoveFailure.RENAME,
                f"Не удалось переместить {source} в {target}: {e}"
            )

        if os.path.lexists(source) or not target.is_file():
            return MoveOutcome.failed(
                source, MoveFailure.RENAME,
                f"Перемещение {source} в {target} не подтверждено"
            )

        return MoveOutcome.moved(source, target)

    def _relocate(self, source: Path, target: Path) -> None:
        """Переименовывает файл, при переходе между устройствами копирует."""
        try:
            os.replace(source, target)
        except OSError as e:
            if e.errno != errno.EXDEV:
                raise
            self._copy_across_devices(source, target)

    def _copy_across_devices(self, source: Path, target: Path) -> None:
        """
        Копирует файл на другое устройство с проверкой и удаляет исходный.

        Копия пишется во временный файл рядом с target и заменяет target
        только после сверки размера и хеша.

        Raises:
            FileOperationError: Если копия не совпала с исходным файлом
            OSError: При ошибках ввода-вывода
        """
        source_size = source.stat().st_size
        source_hash = file_hash(source)

        fd, temp_name = tempfile.mkstemp(prefix='.media_organizer-', dir=target.parent)
        os.close(fd)
        temp_path = Path(temp_name)

        try:
            shutil.copy2(source, temp_path)
            if temp_path.stat().st_size != source_size or file_hash(temp_path) != source_hash:
                raise FileOperationError(f"Копия {source} не совпадает с исходным файлом")
            os.replace(temp_path, target)
        except BaseException:
            if temp_path.exists():
                temp_path.unlink()
            raise

        try:
            source.unlink()
        except OSError:
            # Исходный файл остается, копию убираем
            target.unlink()
            raise
