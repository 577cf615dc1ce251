"""
Общие фикстуры для тестов.
"""

import os
from datetime import datetime
from pathlib import Path

import pytest
from PIL import Image


class RecordingSink:
    """Приемник сообщений, сохраняющий их в список."""

    def __init__(self):
        self.messages = []

    def log(self, level, message):
        self.messages.append((level, message))

    def at(self, level):
        return [message for lvl, message in self.messages if lvl == level]


def make_jpeg(path: Path, date_time: str = None) -> Path:
    """Создает JPEG-файл, при необходимости с тегом EXIF DateTime."""
    path.parent.mkdir(parents=True, exist_ok=True)
    image = Image.new('RGB', (8, 8), color='white')
    if date_time is None:
        image.save(path, format='JPEG')
    else:
        exif = Image.Exif()
        exif[306] = date_time  # DateTime
        image.save(path, format='JPEG', exif=exif.tobytes())
    return path


def make_file(path: Path, content: bytes = b'data', mtime: datetime = None) -> Path:
    """Создает обычный файл с заданным содержимым и временем изменения."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    if mtime is not None:
        timestamp = mtime.timestamp()
        os.utime(path, (timestamp, timestamp))
    return path


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def source_dir(tmp_path):
    directory = tmp_path / 'source'
    directory.mkdir()
    return directory


@pytest.fixture
def target_dir(tmp_path):
    directory = tmp_path / 'target'
    directory.mkdir()
    return directory
