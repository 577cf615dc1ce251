"""
Модуль поиска файлов-кандидатов в каталоге источника.

Отбирает обычные файлы по правилам профиля: рекурсивный обход,
фильтр по расширению, пропуск символических ссылок.
"""

import os
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional

from .config_loader import Profile


ScanErrorCallback = Callable[[Path, OSError], None]


def file_extension(name: str) -> str:
    """
    Возвращает расширение файла - текст после последней точки.

    Args:
        name: Имя файла

    Returns:
        str: Расширение без точки или пустая строка
    """
    base, dot, extension = name.rpartition('.')
    return extension if dot else ''


class PathClassifier:
    """Класс для поиска файлов-кандидатов."""

    def __init__(self, recursive: bool = False, valid_extensions: Iterable[str] = (),
                 on_error: Optional[ScanErrorCallback] = None):
        """
        Инициализация классификатора.

        Args:
            recursive: Спускаться в подкаталоги
            valid_extensions: Допустимые расширения (пусто - любые файлы)
            on_error: Вызывается для каталогов, которые не удалось прочитать
        """
        self.recursive = recursive
        self.valid_extensions = frozenset(valid_extensions)
        self.on_error = on_error

    @classmethod
    def for_profile(cls, profile: Profile,
                    on_error: Optional[ScanErrorCallback] = None) -> 'PathClassifier':
        return cls(profile.search_recursive, profile.valid_extensions, on_error)

    def accepts(self, name: str) -> bool:
        """Проверяет имя файла по списку расширений (с учетом регистра)."""
        if not self.valid_extensions:
            return True
        return file_extension(name) in self.valid_extensions

    def scan(self, root: Path) -> Iterator[Path]:
        """
        Обходит каталог в глубину и выдает абсолютные пути файлов-кандидатов.

        Символические ссылки не включаются и не обходятся. Нечитаемый
        каталог дает пустой результат для своего поддерева.

        Args:
            root: Каталог для обхода

        Yields:
            Path: Путь к файлу-кандидату
        """
        root = Path(root).absolute()

        try:
            with os.scandir(root) as iterator:
                entries = sorted(iterator, key=lambda entry: entry.name)
        except OSError as e:
            if self.on_error:
                self.on_error(root, e)
            return

        for entry in entries:
            # os.scandir не возвращает '.' и '..'
            try:
                if entry.is_symlink():
                    continue
                if entry.is_dir(follow_symlinks=False):
                    if self.recursive:
                        yield from self.scan(Path(entry.path))
                    continue
                if not entry.is_file(follow_symlinks=False):
                    # Сокеты, FIFO, устройства
                    continue
            except OSError as e:
                if self.on_error:
                    self.on_error(Path(entry.path), e)
                continue

            if self.accepts(entry.name):
                yield Path(entry.path)

    def list_files(self, root: Path) -> List[Path]:
        """Возвращает список файлов-кандидатов."""
        return list(self.scan(root))
