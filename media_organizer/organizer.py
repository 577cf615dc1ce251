"""
Модуль бизнес-логики раскладки файлов.

ProfileRunner выполняет один профиль: проверка опций, поиск файлов,
определение даты и перемещение каждого файла, итоговая статистика.
MediaOrganizer последовательно выполняет набор профилей; ошибка одного
профиля не мешает выполнению следующих.
"""

import os
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Set

from .classifier import PathClassifier
from .config_loader import Profile, build_profile
from .date_resolver import DateResolver, compile_file_name_mask
from .logger import LogSink, MediaOrganizerLogger
from .mover import CollisionSafeMover, MoveFailure, mask_has_date_token


class ProfileValidationError(Exception):
    """Исключение для некорректных опций профиля."""
    pass


class OrganizeStats:
    """Класс для хранения статистики выполнения профиля."""

    def __init__(self, profile_name: str = ''):
        self.profile_name = profile_name
        self.valid = True
        self.dry_run = False
        self.cancelled = False
        self.found_files = 0
        self.processed_files = 0
        self.successful_files = 0
        self.skipped_files = 0
        self.failed_files = 0
        self.start_time = None
        self.end_time = None
        self.errors = []

    def add_error(self, file_path, error) -> None:
        """Добавляет ошибку в список."""
        self.errors.append({
            'file': str(file_path),
            'error': str(error),
            'timestamp': datetime.now()
        })

    def get_duration(self) -> Optional[float]:
        """Возвращает продолжительность выполнения в секундах."""
        if self.start_time and self.end_time:
            return (self.end_time - self.start_time).total_seconds()
        return None

    def get_success_rate(self) -> float:
        """Возвращает процент успешно перемещенных файлов."""
        if self.processed_files == 0:
            return 0.0
        return (self.successful_files / self.processed_files) * 100

    def to_dict(self) -> Dict:
        """Преобразует статистику в словарь."""
        return {
            'profile': self.profile_name,
            'valid': self.valid,
            'dry_run': self.dry_run,
            'cancelled': self.cancelled,
            'found_files': self.found_files,
            'processed_files': self.processed_files,
            'successful_files': self.successful_files,
            'skipped_files': self.skipped_files,
            'failed_files': self.failed_files,
            'start_time': self.start_time.isoformat() if self.start_time else None,
            'end_time': self.end_time.isoformat() if self.end_time else None,
            'duration_seconds': self.get_duration(),
            'success_rate': self.get_success_rate(),
            'error_count': len(self.errors)
        }


def directory_exists_and_is_writable(directory: Optional[Path], create: bool = True) -> bool:
    """
    Проверяет, что каталог существует и доступен для записи.

    Args:
        directory: Каталог для проверки
        create: Создать каталог (с родителями), если его нет

    Returns:
        bool: True если каталог готов к работе
    """
    if not directory:
        return False

    directory = Path(directory)
    if not directory.exists():
        if not create:
            return False
        try:
            directory.mkdir(mode=0o775, parents=True, exist_ok=True)
        except OSError:
            return False

    return directory.is_dir() and os.access(directory, os.W_OK)


def validate_profile(profile: Profile, create_directories: bool = True) -> None:
    """
    Проверяет, что опции профиля корректны и выполнимы.

    Без create_directories (пробный прогон) отсутствующий каталог
    назначения допускается, каталоги не создаются.

    Args:
        profile: Профиль
        create_directories: Создавать отсутствующие каталоги

    Raises:
        ProfileValidationError: Если профиль некорректен
    """
    if not directory_exists_and_is_writable(profile.source_directory, create_directories):
        raise ProfileValidationError(
            f"Каталог источника не существует или недоступен для записи: {profile.source_directory or ''}"
        )

    target = profile.target_directory
    target_ready = directory_exists_and_is_writable(target, create_directories)
    if not target_ready and (create_directories or not target or Path(target).exists()):
        raise ProfileValidationError(
            f"Каталог назначения не существует или недоступен для записи: {target or ''}"
        )

    if not profile.target_mask or not mask_has_date_token(profile.target_mask):
        raise ProfileValidationError(f"Некорректная или пустая маска каталога: '{profile.target_mask}'")

    if not profile.enabled_strategies:
        raise ProfileValidationError("Не включен ни один способ определения даты. Проверьте опции профиля.")

    for mask in profile.file_name_masks:
        try:
            compile_file_name_mask(mask)
        except ValueError as e:
            raise ProfileValidationError(str(e))


def is_readable_file(file_path: Path) -> bool:
    """Проверяет, что путь - обычный читаемый файл, а не ссылка или каталог."""
    path = Path(file_path)
    return path.is_file() and not path.is_symlink() and os.access(path, os.R_OK)


class ProfileRunner:
    """Класс для выполнения одного профиля."""

    def __init__(self, profile: Profile, sink: Optional[LogSink] = None, dry_run: bool = False,
                 stop_event: Optional[threading.Event] = None):
        """
        Инициализация.

        Args:
            profile: Профиль
            sink: Приемник сообщений (по умолчанию MediaOrganizerLogger)
            dry_run: Только показать, куда будут перемещены файлы
            stop_event: При установке обработка останавливается между файлами
        """
        self.profile = profile
        self.sink = sink if sink is not None else MediaOrganizerLogger()
        self.dry_run = dry_run
        self.stop_event = stop_event
        self.resolver = DateResolver(profile)
        self.mover: Optional[CollisionSafeMover] = None
        # Пути, уже выданные пробным прогоном
        self.planned: Set[Path] = set()
        self.stats = OrganizeStats(profile.name)
        self.stats.dry_run = dry_run

    def _log(self, level: str, message: str) -> None:
        self.sink.log(level, message)

    def _on_scan_error(self, path: Path, error: OSError) -> None:
        self._log('warning', f"⚠️ Не удалось прочитать каталог {path}: {error}")

    def run(self) -> OrganizeStats:
        """
        Выполняет профиль.

        Returns:
            OrganizeStats: Статистика выполнения
        """
        self.stats.start_time = datetime.now()
        self._log('info', f"🚀 Обработка профиля: {self.profile.name}")

        try:
            validate_profile(self.profile, create_directories=not self.dry_run)
        except ProfileValidationError as e:
            self.stats.valid = False
            self.stats.end_time = datetime.now()
            self._log('error', f"❌ Профиль {self.profile.name} пропущен: {e}")
            return self.stats

        self.mover = CollisionSafeMover.for_profile(self.profile)
        classifier = PathClassifier.for_profile(self.profile, on_error=self._on_scan_error)
        # Список строится до перемещений, чтобы не обходить уже перемещенные файлы
        files = classifier.list_files(self.profile.source_directory)
        self.stats.found_files = len(files)
        self._log('debug', f"📊 Найдено файлов: {len(files)}")

        for file_path in files:
            if self.stop_event is not None and self.stop_event.is_set():
                self.stats.cancelled = True
                self._log('warning', f"⚠️ Профиль {self.profile.name} остановлен по запросу")
                break

            self.stats.processed_files += 1
            try:
                self._process_file(file_path)
            except Exception as e:
                self.stats.failed_files += 1
                self.stats.add_error(file_path, e)
                self._log('error', f"❌ Ошибка при обработке файла {file_path}: {e}")

        self.stats.end_time = datetime.now()
        self._log(
            'info',
            f"✅ Профиль {self.profile.name} завершен: перемещено {self.stats.successful_files} "
            f"из {self.stats.processed_files}, пропущено {self.stats.skipped_files}, "
            f"ошибок {self.stats.failed_files}"
        )
        return self.stats

    def _process_file(self, file_path: Path) -> None:
        """Обрабатывает один файл: проверка, дата, перемещение."""
        self._log('info', f"📁 Обработка: {file_path}")

        if not is_readable_file(file_path):
            self.stats.skipped_files += 1
            self._log('warning', f"⚠️ {file_path} недоступен для чтения или не является обычным файлом")
            return

        resolved = self.resolver.resolve(file_path)
        if resolved is None:
            self.stats.skipped_files += 1
            self._log('warning', f"⚠️ Не удалось определить дату файла: {file_path}")
            return

        self._log('debug', f"📅 {file_path}: дата {resolved}")

        if self.dry_run:
            outcome = self.mover.plan(file_path, resolved.value, reserved=self.planned)
            if outcome.ok:
                self.planned.add(outcome.destination)
        else:
            outcome = self.mover.move(file_path, resolved.value)

        if outcome.ok:
            self.stats.successful_files += 1
            action = "будет перемещен в" if self.dry_run else "перемещен в"
            self._log('info', f"✅ {file_path} {action} {outcome.destination}")
            return

        self.stats.failed_files += 1
        self.stats.add_error(file_path, outcome.error)
        level = 'error' if outcome.failure == MoveFailure.DIRECTORY else 'warning'
        self._log(level, f"❌ {outcome.error}")


class MediaOrganizer:
    """Основной класс для раскладки файлов по набору профилей."""

    def __init__(self, profiles: Optional[Mapping[str, Any]] = None, sink: Optional[LogSink] = None,
                 dry_run: bool = False, stop_event: Optional[threading.Event] = None):
        """
        Инициализация.

        Args:
            profiles: Имя профиля -> Profile или словарь переопределений
            sink: Приемник сообщений (по умолчанию MediaOrganizerLogger)
            dry_run: Только показать, куда будут перемещены файлы
            stop_event: Событие для кооперативной остановки
        """
        self.profiles = dict(profiles or {})
        self.sink = sink if sink is not None else MediaOrganizerLogger()
        self.dry_run = dry_run
        self.stop_event = stop_event

    def _warn_unknown_options(self, name: str, options: Any) -> None:
        unknown = Profile.unknown_options(options)
        if unknown:
            self.sink.log(
                'warning',
                f"⚠️ Профиль {name}: неизвестные параметры проигнорированы: {', '.join(unknown)}"
            )

    def _invalid_profile(self, name: str, error: Exception) -> OrganizeStats:
        """Статистика профиля, который не удалось собрать из опций."""
        stats = OrganizeStats(name)
        stats.valid = False
        stats.dry_run = self.dry_run
        stats.start_time = stats.end_time = datetime.now()
        stats.add_error(name, error)
        self.sink.log('error', f"❌ Профиль {name} пропущен: {error}")
        return stats

    def organize(self, profiles: Optional[Mapping[str, Any]] = None) -> Dict[str, OrganizeStats]:
        """
        Выполняет профили в порядке их следования.

        Некорректные опции одного профиля не мешают выполнению остальных.

        Args:
            profiles: Профили для выполнения (по умолчанию переданные в конструктор)

        Returns:
            Dict[str, OrganizeStats]: Статистика по каждому профилю
        """
        selected = profiles if profiles else self.profiles

        results: Dict[str, OrganizeStats] = {}
        for name, options in selected.items():
            if self.stop_event is not None and self.stop_event.is_set():
                break

            try:
                profile = build_profile(name, options)
            except (TypeError, ValueError, AttributeError) as e:
                results[name] = self._invalid_profile(name, e)
                continue

            self._warn_unknown_options(name, options)
            runner = ProfileRunner(profile, self.sink, dry_run=self.dry_run, stop_event=self.stop_event)
            results[name] = runner.run()

        return results

    def profile_names(self) -> List[str]:
        return list(self.profiles)


def create_organizer(profiles: Mapping[str, Any], sink: Optional[LogSink] = None,
                     dry_run: bool = False) -> MediaOrganizer:
    """
    Удобная функция для создания объекта MediaOrganizer.

    Args:
        profiles: Профили
        sink: Приемник сообщений
        dry_run: Пробный прогон

    Returns:
        MediaOrganizer: Объект для раскладки файлов
    """
    return MediaOrganizer(profiles, sink, dry_run=dry_run)
