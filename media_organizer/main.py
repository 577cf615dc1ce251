"""
Главный модуль CLI интерфейса для утилиты раскладки файлов.

Предоставляет командный интерфейс для выполнения профилей,
просмотра настроек и предварительного просмотра результатов.
"""

import argparse
import sys
from pathlib import Path
from typing import Dict, List, Optional

from .classifier import PathClassifier
from .config_loader import Config, ConfigError, load_config
from .date_resolver import DateResolver
from .logger import MediaOrganizerLogger, normalize_level
from .mover import CollisionSafeMover
from .organizer import MediaOrganizer, OrganizeStats, create_organizer


class MediaOrganizerCLI:
    """Класс для обработки команд CLI."""

    def __init__(self):
        self.config: Optional[Config] = None
        self.logger: Optional[MediaOrganizerLogger] = None
        self.organizer: Optional[MediaOrganizer] = None

    def setup(self, config_path: str = "config/settings.ini", log_level: Optional[str] = None,
              dry_run: bool = False) -> bool:
        """
        Инициализирует CLI с конфигурацией.

        Args:
            config_path: Путь к файлу конфигурации
            log_level: Уровень логирования (переопределяет конфигурацию)
            dry_run: Пробный прогон без перемещения файлов

        Returns:
            bool: True если инициализация успешна
        """
        try:
            self.config = load_config(config_path)

            if log_level:
                self.config.logging.level = normalize_level(log_level)

            self.logger = MediaOrganizerLogger(self.config.logging)
            self.organizer = create_organizer(self.config.profiles, self.logger, dry_run=dry_run)

            self.logger.log('debug', f"⚙️ Конфигурация загружена из {config_path}")
            return True

        except (FileNotFoundError, ConfigError, ValueError) as e:
            print(f"❌ Ошибка инициализации: {e}")
            self.config = None
            self.logger = None
            self.organizer = None
            return False

    def _select_profiles(self, names: Optional[List[str]]) -> Optional[Dict]:
        """Отбирает профили по именам в порядке конфигурации."""
        if not names:
            return dict(self.config.profiles)

        unknown = [name for name in names if name not in self.config.profiles]
        if unknown:
            print(f"❌ Неизвестные профили: {', '.join(unknown)}")
            return None

        return {name: profile for name, profile in self.config.profiles.items() if name in names}

    def _print_stats(self, stats: OrganizeStats) -> None:
        if not stats.valid:
            print(f"\n❌ Профиль {stats.profile_name}: некорректные настройки, файлы не обработаны")
            return

        title = "пробный прогон" if stats.dry_run else "завершен"
        print(f"\n✅ Профиль {stats.profile_name}: {title}")
        print(f"   • Найдено: {stats.found_files}")
        print(f"   • Обработано: {stats.processed_files}")
        print(f"   • Перемещено: {stats.successful_files}")
        print(f"   • Пропущено: {stats.skipped_files}")
        print(f"   • Ошибок: {stats.failed_files}")
        duration = stats.get_duration()
        if duration is not None:
            print(f"   • Продолжительность: {duration:.2f} сек")
        if stats.cancelled:
            print("   ⚠️ Обработка остановлена досрочно")

        if stats.errors:
            print(f"\n⚠️ Обнаружено {len(stats.errors)} ошибок:")
            for error in stats.errors[:10]:  # Показываем первые 10 ошибок
                print(f"   • {error['file']}: {error['error']}")
            if len(stats.errors) > 10:
                print(f"   ... и еще {len(stats.errors) - 10} ошибок")

    def cmd_organize(self, args) -> int:
        """
        Команда раскладки файлов.

        Args:
            args: Аргументы командной строки

        Returns:
            int: Код возврата (0 - успех, 1 - ошибка)
        """
        profiles = self._select_profiles(getattr(args, 'profile', None))
        if profiles is None:
            return 1

        try:
            results = self.organizer.organize(profiles)
        except KeyboardInterrupt:
            print("\n⚠️ Операция прервана пользователем")
            return 1

        for stats in results.values():
            self._print_stats(stats)

        failed = any(not stats.valid or stats.failed_files for stats in results.values())
        return 1 if failed else 0

    def cmd_profiles(self, args) -> int:
        """Команда просмотра профилей с действующими опциями."""
        print(f"📋 Профилей: {len(self.config.profiles)}")
        for name, profile in self.config.profiles.items():
            print(f"\n[{name}]")
            for key, value in profile.to_dict().items():
                if isinstance(value, list):
                    value = ', '.join(value) if value else '(пусто)'
                print(f"   • {key}: {value}")
        return 0

    def cmd_scan(self, args) -> int:
        """
        Команда предварительного просмотра: файлы, их даты и каталоги назначения.

        Файлы не перемещаются, каталоги не создаются.
        """
        profiles = self._select_profiles([args.profile])
        if profiles is None:
            return 1

        profile = profiles[args.profile]
        if not profile.source_directory or not Path(profile.source_directory).is_dir():
            print(f"❌ Каталог источника не найден: {profile.source_directory or ''}")
            return 1

        classifier = PathClassifier.for_profile(
            profile, on_error=lambda path, e: print(f"⚠️ Не удалось прочитать каталог {path}: {e}")
        )
        resolver = DateResolver(profile)
        mover = CollisionSafeMover.for_profile(profile) if profile.target_directory else None

        files = classifier.list_files(profile.source_directory)
        limit = args.limit
        planned = set()
        print(f"📁 Профиль {profile.name}: найдено файлов {len(files)} (первые {limit}):")

        for i, file_path in enumerate(files[:limit]):
            resolved = resolver.resolve(file_path)
            if resolved is None:
                print(f"   {i + 1:2d}. {file_path.name} - дата не определена")
                continue

            line = f"   {i + 1:2d}. {file_path.name} - {resolved}"
            if mover is not None:
                outcome = mover.plan(file_path, resolved.value, reserved=planned)
                if outcome.ok:
                    planned.add(outcome.destination)
                line += f" → {outcome.destination if outcome.ok else outcome.error}"
            print(line)

        if len(files) > limit:
            print(f"   ... и еще {len(files) - limit} файлов")

        return 0


def positive_int(value: str) -> int:
    """Тип аргумента: целое число не меньше 1."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"ожидается целое число: {value}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"значение должно быть не меньше 1: {value}")
    return number


def create_parser() -> argparse.ArgumentParser:
    """
    Создает парсер аргументов командной строки.

    Returns:
        argparse.ArgumentParser: Настроенный парсер
    """
    parser = argparse.ArgumentParser(
        description="Утилита раскладки файлов по каталогам на основе даты",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Примеры использования:

  # Выполнить все профили
  python -m media_organizer.main organize

  # Выполнить выбранные профили без перемещения файлов
  python -m media_organizer.main organize --profile photos --dry-run

  # Просмотр профилей
  python -m media_organizer.main profiles

  # Предварительный просмотр дат и каталогов назначения
  python -m media_organizer.main scan --profile photos --limit 50
        """
    )

    # Общие аргументы
    parser.add_argument(
        '--config',
        default='config/settings.ini',
        help='Путь к файлу конфигурации (по умолчанию: config/settings.ini)'
    )
    parser.add_argument(
        '--log-level',
        choices=['none', 'error', 'warning', 'warn', 'info', 'debug'],
        help='Уровень логирования (переопределяет конфигурацию)'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Подробный вывод'
    )

    subparsers = parser.add_subparsers(dest='command', help='Доступные команды')

    organize_parser = subparsers.add_parser('organize', help='Раскладка файлов по профилям')
    organize_parser.add_argument(
        '--profile',
        action='append',
        help='Имя профиля (можно указать несколько раз; по умолчанию все)'
    )
    organize_parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Показать, куда будут перемещены файлы, ничего не изменяя'
    )

    subparsers.add_parser('profiles', help='Просмотр профилей')

    scan_parser = subparsers.add_parser('scan', help='Предварительный просмотр дат файлов')
    scan_parser.add_argument(
        '--profile',
        required=True,
        help='Имя профиля'
    )
    scan_parser.add_argument(
        '--limit',
        type=positive_int,
        default=20,
        help='Максимальное количество файлов для отображения (по умолчанию: 20)'
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Главная функция CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    log_level = args.log_level
    if args.verbose and not log_level:
        log_level = 'debug'

    cli = MediaOrganizerCLI()

    if not cli.setup(args.config, log_level=log_level, dry_run=getattr(args, 'dry_run', False)):
        return 1

    try:
        if args.command == 'organize':
            return cli.cmd_organize(args)
        elif args.command == 'profiles':
            return cli.cmd_profiles(args)
        elif args.command == 'scan':
            return cli.cmd_scan(args)
        else:
            print(f"❌ Неизвестная команда: {args.command}")
            return 1

    except KeyboardInterrupt:
        print("\n⚠️ Операция прервана пользователем")
        return 1
    except Exception as e:
        print(f"❌ Неожиданная ошибка: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1
    finally:
        if cli.logger:
            cli.logger.close()


if __name__ == "__main__":
    sys.exit(main())
