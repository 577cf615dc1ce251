"""
Модуль для описания и загрузки профилей раскладки файлов.

Профиль (Profile) - неизменяемый набор правил для одной пары каталогов
источник/приемник. Профили собираются из шаблона по умолчанию и
переопределений вызывающей стороны, либо загружаются из INI-файла
config/settings.ini.
"""

import configparser
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple


DEFAULT_VALID_EXTENSIONS = ('jpg', 'jpeg')
DEFAULT_EXIF_FIELDS = ('DateTime', 'DateTimeOriginal', 'DateTimeDigitized')
DEFAULT_FILE_NAME_MASKS = ('YYYYMMDD', 'YYYY-MM-DD')
DEFAULT_TARGET_MASK = 'Y/Y-m-d'

PROFILE_SECTION_PREFIX = 'profile:'

_BOOLEAN_OPTIONS = ('search_recursive', 'overwrite', 'scan_exif', 'modified_time')
_LIST_OPTIONS = ('valid_extensions', 'exif_fields', 'file_name_masks')
_PATH_OPTIONS = ('source_directory', 'target_directory')
_FALSE_STRINGS = ('', '0', 'false', 'no', 'off')


class ConfigError(ValueError):
    """Исключение для ошибок конфигурации."""
    pass


def _as_tuple(value: Any) -> Tuple[str, ...]:
    """
    Приводит значение списочной опции к кортежу строк.

    None и False означают пустой список, строка разбивается по запятым.
    """
    if value is None or value is False:
        return ()
    if isinstance(value, str):
        if value.strip().lower() in _FALSE_STRINGS:
            return ()
        return tuple(part.strip() for part in value.split(',') if part.strip())
    if not isinstance(value, (list, tuple, set, frozenset)):
        raise TypeError(f"ожидается список значений, получено {value!r}")
    return tuple(str(item) for item in value)


def _as_path(value: Any) -> Optional[Path]:
    if value is None or value == '':
        return None
    return Path(value)


@dataclass(frozen=True)
class Profile:
    """Профиль раскладки файлов."""
    name: str = 'default'
    # Каталог для поиска файлов
    source_directory: Optional[Path] = None
    # Искать файлы во всех подкаталогах source_directory
    search_recursive: bool = False
    # Расширения файлов (с учетом регистра). Пустой кортеж - любые файлы
    valid_extensions: Tuple[str, ...] = DEFAULT_VALID_EXTENSIONS
    # Родительский каталог для перемещенных файлов
    target_directory: Optional[Path] = None
    # Y = год (4 цифры), y = год (2 цифры), m = месяц, d = день
    target_mask: str = DEFAULT_TARGET_MASK
    # True - заменять существующие файлы, False - добавлять счетчик _0, _1, ...
    overwrite: bool = False
    scan_exif: bool = True
    exif_fields: Tuple[str, ...] = DEFAULT_EXIF_FIELDS
    # Пустой кортеж отключает поиск даты в имени файла
    file_name_masks: Tuple[str, ...] = DEFAULT_FILE_NAME_MASKS
    modified_time: bool = False

    @classmethod
    def option_names(cls) -> List[str]:
        """Возвращает имена опций, которые можно переопределить."""
        return [f.name for f in fields(cls) if f.name != 'name']

    @classmethod
    def from_options(cls, name: str, options: Optional[Mapping[str, Any]] = None) -> 'Profile':
        """
        Собирает профиль из значений по умолчанию и переопределений.

        Заданные ключи заменяют значения по умолчанию целиком, без слияния
        вложенных значений. Неизвестные ключи игнорируются.

        Args:
            name: Имя профиля
            options: Переопределения опций

        Returns:
            Profile: Собранный профиль

        Raises:
            ConfigError: Если опции не являются словарем или значение
                опции имеет неподходящий тип
        """
        if options is not None and not isinstance(options, Mapping):
            raise ConfigError(f"Опции профиля {name} должны быть словарем, получено {options!r}")

        known = set(cls.option_names())
        values: Dict[str, Any] = {}

        for key, value in (options or {}).items():
            if key not in known:
                continue
            try:
                if key in _PATH_OPTIONS:
                    values[key] = _as_path(value)
                elif key in _LIST_OPTIONS:
                    values[key] = _as_tuple(value)
                elif key in _BOOLEAN_OPTIONS:
                    values[key] = bool(value)
                else:
                    values[key] = '' if value is None else str(value)
            except TypeError as e:
                raise ConfigError(f"Некорректное значение параметра {key} в профиле {name}: {e}")

        return cls(name=name, **values)

    @classmethod
    def unknown_options(cls, options: Optional[Mapping[str, Any]]) -> List[str]:
        """Возвращает ключи, которые не являются опциями профиля."""
        if not isinstance(options, Mapping):
            return []
        known = set(cls.option_names())
        return [key for key in options if key not in known]

    @property
    def enabled_strategies(self) -> List[str]:
        """Список включенных способов определения даты в порядке приоритета."""
        strategies = []
        if self.scan_exif:
            strategies.append('exif')
        if self.file_name_masks:
            strategies.append('file_name')
        if self.modified_time:
            strategies.append('modified_time')
        return strategies

    def to_dict(self) -> Dict[str, Any]:
        """Преобразует профиль в словарь (для вывода в CLI)."""
        return {
            'source_directory': str(self.source_directory) if self.source_directory else '',
            'search_recursive': self.search_recursive,
            'valid_extensions': list(self.valid_extensions),
            'target_directory': str(self.target_directory) if self.target_directory else '',
            'target_mask': self.target_mask,
            'overwrite': self.overwrite,
            'scan_exif': self.scan_exif,
            'exif_fields': list(self.exif_fields),
            'file_name_masks': list(self.file_name_masks),
            'modified_time': self.modified_time,
        }


@dataclass
class LoggingConfig:
    """Конфигурация логирования."""
    level: str = 'warning'
    log_file: Optional[Path] = None
    max_log_size: int = 10
    backup_count: int = 5


@dataclass
class Config:
    """Основная конфигурация приложения."""
    profiles: Dict[str, Profile] = field(default_factory=dict)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


class ConfigLoader:
    """Класс для загрузки и валидации конфигурации."""

    def __init__(self, config_path: str = "config/settings.ini"):
        """
        Инициализация загрузчика конфигурации.

        Args:
            config_path: Путь к файлу конфигурации
        """
        self.config_path = Path(config_path)
        self._config: Optional[Config] = None

    def load_config(self) -> Config:
        """
        Загружает конфигурацию из файла.

        Returns:
            Config: Объект конфигурации

        Raises:
            FileNotFoundError: Если файл конфигурации не найден
            ValueError: Если конфигурация некорректна
        """
        if not self.config_path.exists():
            raise FileNotFoundError(f"Файл конфигурации не найден: {self.config_path}")

        config_parser = configparser.ConfigParser(interpolation=None)
        # Имена опций чувствительны к регистру
        config_parser.optionxform = str

        try:
            config_parser.read(self.config_path, encoding='utf-8')

            self._config = Config(
                profiles=self._load_profiles(config_parser),
                logging=self._load_logging_config(config_parser)
            )

            self._validate_config()

            return self._config

        except ConfigError:
            raise
        except (configparser.Error, ValueError) as e:
            raise ConfigError(f"Ошибка загрузки конфигурации: {e}")

    def _load_profiles(self, parser: configparser.ConfigParser) -> Dict[str, Profile]:
        """Загружает секции [profile:<имя>] в порядке их следования."""
        profiles: Dict[str, Profile] = {}

        for section in parser.sections():
            if not section.startswith(PROFILE_SECTION_PREFIX):
                continue

            name = section[len(PROFILE_SECTION_PREFIX):].strip()
            if not name:
                raise ConfigError(f"Пустое имя профиля в секции [{section}]")

            options = self._read_profile_options(parser, section)
            unknown = Profile.unknown_options(options)
            if unknown:
                raise ConfigError(
                    f"Неизвестные параметры в профиле '{name}': {', '.join(sorted(unknown))}"
                )

            profiles[name] = Profile.from_options(name, options)

        return profiles

    def _read_profile_options(self, parser: configparser.ConfigParser, section: str) -> Dict[str, Any]:
        """Читает опции секции профиля с приведением типов."""
        options: Dict[str, Any] = {}

        for key in parser.options(section):
            if key in _BOOLEAN_OPTIONS:
                try:
                    options[key] = parser.getboolean(section, key)
                except ValueError:
                    raise ConfigError(
                        f"Некорректное логическое значение [{section}] {key} = {parser.get(section, key)}"
                    )
            else:
                options[key] = parser.get(section, key)

        return options

    def _load_logging_config(self, parser: configparser.ConfigParser) -> LoggingConfig:
        """Загружает конфигурацию логирования. Секция [logging] необязательна."""
        section = 'logging'

        if not parser.has_section(section):
            return LoggingConfig()

        log_file = parser.get(section, 'log_file', fallback='').strip()

        return LoggingConfig(
            level=parser.get(section, 'level', fallback='warning').strip(),
            log_file=Path(log_file) if log_file else None,
            max_log_size=parser.getint(section, 'max_log_size', fallback=10),
            backup_count=parser.getint(section, 'backup_count', fallback=5)
        )

    def _validate_config(self) -> None:
        """Валидирует загруженную конфигурацию."""
        if not self._config:
            raise ConfigError("Конфигурация не загружена")

        if not self._config.profiles:
            raise ConfigError("В конфигурации нет ни одного профиля [profile:<имя>]")

        valid_levels = ['none', 'error', 'warn', 'warning', 'info', 'debug']
        if self._config.logging.level.lower() not in valid_levels:
            raise ConfigError(f"Некорректный уровень логирования: {self._config.logging.level}")

        if self._config.logging.max_log_size <= 0:
            raise ConfigError("Размер файла лога должен быть больше 0")

        if self._config.logging.backup_count < 0:
            raise ConfigError("Количество архивных логов не может быть отрицательным")

    def get_config(self) -> Config:
        """
        Возвращает загруженную конфигурацию.

        Returns:
            Config: Объект конфигурации

        Raises:
            ConfigError: Если конфигурация не загружена
        """
        if self._config is None:
            raise ConfigError("Конфигурация не загружена. Вызовите load_config() сначала.")
        return self._config

    def reload_config(self) -> Config:
        """Перезагружает конфигурацию из файла."""
        self._config = None
        return self.load_config()


def build_profile(name: str, options: Any) -> Profile:
    """
    Возвращает Profile для готового объекта или словаря переопределений.

    Raises:
        ConfigError: Если опции профиля некорректны
    """
    if isinstance(options, Profile):
        return options
    return Profile.from_options(name, options)


def build_profiles(profiles: Mapping[str, Any]) -> Dict[str, Profile]:
    """
    Приводит словарь профилей к объектам Profile.

    Args:
        profiles: Имя профиля -> Profile или словарь переопределений

    Returns:
        Dict[str, Profile]: Профили в исходном порядке
    """
    return {name: build_profile(name, options) for name, options in profiles.items()}


def load_config(config_path: str = "config/settings.ini") -> Config:
    """
    Удобная функция для быстрой загрузки конфигурации.

    Args:
        config_path: Путь к файлу конфигурации

    Returns:
        Config: Объект конфигурации
    """
    loader = ConfigLoader(config_path)
    return loader.load_config()
