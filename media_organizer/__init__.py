"""
Media Organizer

Утилита для раскладки файлов по каталогам на основе даты (Y/Y-m-d и т.п.).
Дата определяется по EXIF, по имени файла или по времени изменения.
"""

__version__ = "1.0.0"
__author__ = "Media Organizer Team"
__description__ = "Utility for organizing files into date-based directory structures"
