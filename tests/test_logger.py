"""
Тесты для модуля logger.py
"""

import io
import logging

import pytest
from unittest.mock import patch

from media_organizer.config_loader import LoggingConfig
from media_organizer.logger import (
    ColoredFormatter,
    LOG_LEVELS,
    MediaOrganizerLogger,
    get_logger,
    normalize_level,
    setup_logger,
)


class TestColoredFormatter:
    """Тесты для ColoredFormatter."""

    def test_colored_formatter(self):
        """Тест цветного форматтера."""
        formatter = ColoredFormatter(
            fmt='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        record = logging.LogRecord(
            name='test',
            level=logging.INFO,
            pathname='',
            lineno=0,
            msg='Test message',
            args=(),
            exc_info=None
        )

        formatted = formatter.format(record)

        assert '\033[32m' in formatted  # Зеленый цвет для INFO
        assert '\033[0m' in formatted
        assert 'Test message' in formatted
        # Запись не изменяется для остальных обработчиков
        assert record.levelname == 'INFO'


class TestNormalizeLevel:
    """Тесты для normalize_level."""

    @pytest.mark.parametrize('raw, expected', [
        ('debug', 'debug'),
        ('INFO', 'info'),
        ('warn', 'warning'),
        ('Warning', 'warning'),
        ('error', 'error'),
        ('none', 'none'),
    ])
    def test_known_levels(self, raw, expected):
        assert normalize_level(raw) == expected

    def test_unknown_level(self):
        with pytest.raises(ValueError, match="Некорректный уровень логирования"):
            normalize_level('critical')

    def test_levels_ascending(self):
        order = sorted(LOG_LEVELS, key=LOG_LEVELS.get)
        assert order == ['none', 'error', 'warning', 'info', 'debug']


class TestMediaOrganizerLogger:
    """Тесты для MediaOrganizerLogger."""

    @pytest.fixture
    def make_logger(self, tmp_path):
        """Создает логгер и закрывает его обработчики после теста."""
        created = []

        def _make(level='debug', log_file=None, stream=None):
            config = LoggingConfig(level=level, log_file=log_file, max_log_size=1, backup_count=1)
            organizer_logger = MediaOrganizerLogger(config, stream=stream or io.StringIO())
            created.append(organizer_logger)
            return organizer_logger

        yield _make

        for organizer_logger in created:
            organizer_logger.close()

    def test_logger_initialization(self, make_logger):
        """Тест инициализации логгера."""
        organizer_logger = make_logger('debug')
        assert organizer_logger.logger.name == 'media_organizer'
        assert organizer_logger.logger.level == logging.DEBUG
        assert organizer_logger.logger.propagate is False

    def test_console_only_without_log_file(self, make_logger):
        organizer_logger = make_logger()
        handlers = organizer_logger.logger.handlers
        assert [type(h).__name__ for h in handlers] == ['StreamHandler']

    def test_logger_handlers_with_file(self, make_logger, tmp_path):
        """Тест обработчиков логгера."""
        organizer_logger = make_logger(log_file=tmp_path / 'logs' / 'organizer.log')
        handler_types = [type(h).__name__ for h in organizer_logger.logger.handlers]

        assert 'RotatingFileHandler' in handler_types
        assert 'StreamHandler' in handler_types
        assert (tmp_path / 'logs').is_dir()

    def test_level_filtering(self, make_logger):
        """Сообщения ниже минимального уровня отбрасываются."""
        organizer_logger = make_logger('warning')

        with patch.object(organizer_logger.logger, 'log') as mock_log:
            organizer_logger.log('debug', 'debug message')
            organizer_logger.log('info', 'info message')
            organizer_logger.log('warning', 'warning message')
            organizer_logger.log('error', 'error message')

        assert [call.args for call in mock_log.call_args_list] == [
            (logging.WARNING, 'warning message'),
            (logging.ERROR, 'error message'),
        ]

    def test_none_level_suppresses_everything(self, make_logger):
        organizer_logger = make_logger('none')

        with patch.object(organizer_logger.logger, 'log') as mock_log:
            for level in ('debug', 'info', 'warning', 'error'):
                organizer_logger.log(level, 'message')

        mock_log.assert_not_called()

    def test_writes_to_stream(self, make_logger):
        stream = io.StringIO()
        organizer_logger = make_logger('info', stream=stream)

        organizer_logger.log('info', 'файл перемещен')

        assert 'файл перемещен' in stream.getvalue()

    def test_writes_to_file(self, make_logger, tmp_path):
        log_file = tmp_path / 'organizer.log'
        organizer_logger = make_logger('info', log_file=log_file)

        organizer_logger.log('error', 'ошибка перемещения')
        organizer_logger.close()

        content = log_file.read_text(encoding='utf-8')
        assert '[ERROR] media_organizer: ошибка перемещения' in content

    def test_set_level(self, make_logger):
        organizer_logger = make_logger('error')
        assert organizer_logger.is_enabled('info') is False

        organizer_logger.set_level('warn')

        assert organizer_logger.level == 'warning'
        assert organizer_logger.is_enabled('warning') is True
        assert organizer_logger.is_enabled('info') is False

    def test_default_config(self):
        organizer_logger = MediaOrganizerLogger(stream=io.StringIO())
        try:
            assert organizer_logger.level == 'warning'
        finally:
            organizer_logger.close()

    def test_setup_logger(self, tmp_path):
        organizer_logger = setup_logger(LoggingConfig(level='info'))
        try:
            assert isinstance(organizer_logger, MediaOrganizerLogger)
            assert get_logger() is organizer_logger.get_logger()
        finally:
            organizer_logger.close()
