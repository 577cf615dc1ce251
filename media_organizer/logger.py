"""
Модуль для настройки логирования и приемника сообщений (log sink).

Ядро раскладки пишет сообщения через любой объект с методом
log(level, message). По умолчанию используется MediaOrganizerLogger,
который отсекает сообщения ниже заданного уровня и передает остальные
в стандартный logging с ротацией файлов и цветным выводом в консоль.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional, Protocol

from .config_loader import LoggingConfig


# Уровни по возрастанию подробности. 'none' подавляет все сообщения.
LOG_LEVELS = {'none': 0, 'error': 1, 'warning': 2, 'info': 3, 'debug': 4}

LEVEL_ALIASES = {'warn': 'warning'}

PYTHON_LEVELS = {
    'error': logging.ERROR,
    'warning': logging.WARNING,
    'info': logging.INFO,
    'debug': logging.DEBUG,
}

LOGGER_NAME = 'media_organizer'


def normalize_level(level: str) -> str:
    """
    Приводит имя уровня к каноническому виду.

    Args:
        level: Имя уровня (регистр не важен, 'warn' == 'warning')

    Returns:
        str: Каноническое имя уровня

    Raises:
        ValueError: Если уровень неизвестен
    """
    name = (level or '').strip().lower()
    name = LEVEL_ALIASES.get(name, name)
    if name not in LOG_LEVELS:
        raise ValueError(f"Некорректный уровень логирования: {level}")
    return name


class LogSink(Protocol):
    """Приемник сообщений ядра."""

    def log(self, level: str, message: str) -> None:
        ...


class ColoredFormatter(logging.Formatter):
    """Форматтер с цветным выводом для консоли."""

    # Цветовые коды ANSI
    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
        'RESET': '\033[0m'        # Reset
    }

    def format(self, record):
        """Форматирует запись лога с цветом."""
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"
        try:
            return super().format(record)
        finally:
            # Запись разделяется между обработчиками
            record.levelname = levelname


class MediaOrganizerLogger:
    """Приемник сообщений по умолчанию поверх стандартного logging."""

    def __init__(self, config: Optional[LoggingConfig] = None, stream=None):
        """
        Инициализация логгера.

        Args:
            config: Конфигурация логирования (по умолчанию уровень warning, только консоль)
            stream: Поток для консольного вывода (по умолчанию sys.stdout)
        """
        self.config = config or LoggingConfig()
        self.level = normalize_level(self.config.level)
        self.stream = stream
        self.logger: Optional[logging.Logger] = None
        self._setup_logger()

    def _setup_logger(self) -> None:
        """Настраивает логгер с файловым и консольным выводом."""
        self.logger = logging.getLogger(LOGGER_NAME)
        self.logger.setLevel(PYTHON_LEVELS.get(self.level, logging.CRITICAL))

        # Очищаем существующие обработчики
        for handler in self.logger.handlers[:]:
            handler.close()
            self.logger.removeHandler(handler)

        fmt = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
        datefmt = '%Y-%m-%d %H:%M:%S'

        if self.config.log_file:
            log_file_path = Path(self.config.log_file)
            log_file_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.handlers.RotatingFileHandler(
                filename=log_file_path,
                maxBytes=self.config.max_log_size * 1024 * 1024,  # MB -> байты
                backupCount=self.config.backup_count,
                encoding='utf-8'
            )
            file_handler.setFormatter(logging.Formatter(fmt=fmt, datefmt=datefmt))
            self.logger.addHandler(file_handler)

        console_handler = logging.StreamHandler(self.stream or sys.stdout)
        console_handler.setFormatter(ColoredFormatter(fmt=fmt, datefmt=datefmt))
        self.logger.addHandler(console_handler)

        # Предотвращаем дублирование сообщений
        self.logger.propagate = False

    def is_enabled(self, level: str) -> bool:
        """Проверяет, пройдет ли сообщение данного уровня через фильтр."""
        level = normalize_level(level)
        if level == 'none' or self.level == 'none':
            return False
        return LOG_LEVELS[level] <= LOG_LEVELS[self.level]

    def log(self, level: str, message: str) -> None:
        """
        Записывает сообщение, если его уровень не ниже минимального.

        Args:
            level: debug, info, warning или error
            message: Текст сообщения
        """
        if not self.is_enabled(level):
            return
        self.logger.log(PYTHON_LEVELS[normalize_level(level)], message)

    def set_level(self, level: str) -> None:
        """Меняет минимальный уровень сообщений."""
        self.level = normalize_level(level)
        self.logger.setLevel(PYTHON_LEVELS.get(self.level, logging.CRITICAL))

    def get_logger(self) -> logging.Logger:
        """
        Возвращает настроенный логгер.

        Returns:
            logging.Logger: Настроенный логгер
        """
        if self.logger is None:
            raise RuntimeError("Логгер не инициализирован")
        return self.logger

    def close(self) -> None:
        """Закрывает обработчики логгера."""
        for handler in self.logger.handlers[:]:
            handler.close()
            self.logger.removeHandler(handler)


def setup_logger(config: LoggingConfig) -> MediaOrganizerLogger:
    """
    Удобная функция для быстрой настройки приемника сообщений.

    Args:
        config: Конфигурация логирования

    Returns:
        MediaOrganizerLogger: Настроенный приемник
    """
    return MediaOrganizerLogger(config)


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """Получает логгер по имени."""
    return logging.getLogger(name)
