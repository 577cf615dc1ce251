"""
Модуль определения даты файла.

Дата ищется по цепочке способов с фиксированным приоритетом:
EXIF-метаданные, шаблон в имени файла, время изменения файла.
Отсутствие или некорректность данных не считается ошибкой - способ
просто не дает результата, и проверяется следующий.
"""

import os
import re
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Dict, Iterable, Optional, Pattern

from PIL import ExifTags, Image

from .config_loader import Profile


# Указатель на вложенный Exif IFD (DateTimeOriginal, DateTimeDigitized)
EXIF_IFD_POINTER = 0x8769

EXIF_DATE_PATTERN = re.compile(r'^(\d{4}):(\d{2}):(\d{2})(?: (\d{2}):(\d{2}):(\d{2}))?$')

_MASK_PART_PATTERN = re.compile(r'Y+|M+|D+|[^YMD]+')
_MASK_GROUPS = {'Y': ('year', 4), 'M': ('month', 2), 'D': ('day', 2)}


class DateSource(str, Enum):
    """Способ, которым получена дата."""
    EXIF = 'exif'
    FILE_NAME = 'file_name'
    MODIFIED_TIME = 'modified_time'


@dataclass(frozen=True)
class ResolvedDate:
    """Календарная дата файла и способ ее получения."""
    value: date
    source: DateSource

    def isoformat(self) -> str:
        return self.value.isoformat()

    def __str__(self) -> str:
        return f"{self.value.isoformat()} ({self.source.value})"


def _to_date(year: str, month: str, day: str) -> Optional[date]:
    try:
        return date(int(year), int(month), int(day))
    except ValueError:
        return None


def _tag_text(value) -> str:
    if isinstance(value, bytes):
        value = value.decode('ascii', errors='ignore')
    return str(value).strip('\x00 ')


def read_exif_tags(file_path: Path) -> Dict[str, str]:
    """
    Читает текстовые EXIF-теги изображения.

    Теги основного IFD имеют приоритет над тегами вложенного Exif IFD.

    Args:
        file_path: Путь к файлу

    Returns:
        Dict[str, str]: Имя тега -> значение. Пустой словарь, если
        файл не является изображением или метаданных нет
    """
    tags: Dict[str, str] = {}
    try:
        with Image.open(file_path) as image:
            exif = image.getexif()
            ifds = [exif, exif.get_ifd(EXIF_IFD_POINTER)]
            for ifd in ifds:
                for tag_id, value in ifd.items():
                    name = ExifTags.TAGS.get(tag_id)
                    if name and isinstance(value, (str, bytes)):
                        tags.setdefault(name, _tag_text(value))
    except Exception:
        # Не изображение или поврежденные метаданные
        return {}
    return tags


def parse_exif_date(value: str) -> Optional[date]:
    """
    Разбирает значение EXIF вида 'YYYY:MM:DD[ HH:MM:SS]'.

    Returns:
        date или None, если значение не соответствует формату
    """
    match = EXIF_DATE_PATTERN.match(value or '')
    if not match:
        return None
    return _to_date(*match.group(1, 2, 3))


def exif_date(file_path: Path, exif_fields: Iterable[str]) -> Optional[date]:
    """
    Возвращает дату из первого подходящего EXIF-поля.

    Args:
        file_path: Путь к файлу
        exif_fields: Имена полей в порядке проверки

    Returns:
        date или None
    """
    tags = read_exif_tags(file_path)
    if not tags:
        return None

    for field_name in exif_fields:
        found = parse_exif_date(tags.get(field_name, ''))
        if found:
            return found
    return None


@lru_cache(maxsize=64)
def compile_file_name_mask(mask: str) -> Pattern:
    """
    Превращает маску имени файла в регулярное выражение.

    Серии Y, M, D заменяются группами цифр той же длины, остальные
    символы ищутся буквально. Маска должна содержать ровно одну серию
    YYYY, MM и DD.

    Args:
        mask: Маска, например 'YYYYMMDD' или 'YYYY-MM-DD'

    Returns:
        Pattern: Скомпилированное выражение с группами year, month, day

    Raises:
        ValueError: Если маска некорректна
    """
    seen = set()
    regex = []

    for part in _MASK_PART_PATTERN.findall(mask or ''):
        letter = part[0]
        if letter in _MASK_GROUPS:
            group, width = _MASK_GROUPS[letter]
            if group in seen or len(part) != width:
                raise ValueError(f"Некорректная маска имени файла: {mask}")
            seen.add(group)
            regex.append(f"(?P<{group}>\\d{{{width}}})")
        else:
            regex.append(re.escape(part))

    if seen != {'year', 'month', 'day'}:
        raise ValueError(f"Некорректная маска имени файла: {mask}")

    return re.compile(''.join(regex))


def file_name_date(file_name: str, masks: Iterable[str]) -> Optional[date]:
    """
    Ищет дату в имени файла по маскам в порядке их следования.

    Поиск ведется по подстроке, совпадения могут перекрываться; первое
    совпадение, дающее существующую дату, выигрывает.

    Args:
        file_name: Имя файла без расширения и каталога
        masks: Маски имени файла

    Returns:
        date или None
    """
    for mask in masks:
        pattern = compile_file_name_mask(mask)
        position = 0
        while True:
            match = pattern.search(file_name, position)
            if not match:
                break
            found = _to_date(match.group('year'), match.group('month'), match.group('day'))
            if found:
                return found
            position = match.start() + 1
    return None


def modified_date(file_path: Path) -> Optional[date]:
    """Возвращает дату последнего изменения файла в локальном времени."""
    try:
        return datetime.fromtimestamp(os.stat(file_path).st_mtime).date()
    except (OSError, OverflowError, ValueError):
        return None


def file_stem(file_path: Path) -> str:
    """Имя файла без расширения (текст до последней точки)."""
    name = Path(file_path).name
    base, dot, _ = name.rpartition('.')
    return base if dot else name


class DateResolver:
    """Класс для определения даты файла по правилам профиля."""

    def __init__(self, profile: Profile):
        """
        Инициализация.

        Args:
            profile: Профиль с включенными способами определения даты
        """
        self.profile = profile

    def resolve(self, file_path: Path) -> Optional[ResolvedDate]:
        """
        Определяет дату файла.

        Отключенные в профиле способы не проверяются вовсе.

        Args:
            file_path: Путь к файлу

        Returns:
            ResolvedDate или None, если дату определить не удалось
        """
        if self.profile.scan_exif:
            found = exif_date(file_path, self.profile.exif_fields)
            if found:
                return ResolvedDate(found, DateSource.EXIF)

        if self.profile.file_name_masks:
            found = file_name_date(file_stem(file_path), self.profile.file_name_masks)
            if found:
                return ResolvedDate(found, DateSource.FILE_NAME)

        if self.profile.modified_time:
            found = modified_date(file_path)
            if found:
                return ResolvedDate(found, DateSource.MODIFIED_TIME)

        return None
