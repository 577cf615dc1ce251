"""
Тесты для модуля main.py
"""

import pytest

from media_organizer.main import MediaOrganizerCLI, create_parser, main

from conftest import make_file


@pytest.fixture
def config_file(tmp_path, source_dir, target_dir):
    """Создает файл конфигурации с двумя профилями."""
    path = tmp_path / 'settings.ini'
    path.write_text(
        "[logging]\n"
        "level = none\n"
        "\n"
        "[profile:photos]\n"
        f"source_directory = {source_dir}\n"
        f"target_directory = {target_dir}\n"
        "\n"
        "[profile:broken]\n"
        f"source_directory = {tmp_path / 'missing'}\n"
        f"target_directory = {target_dir}\n"
        "target_mask = photos\n",
        encoding='utf-8'
    )
    return path


class TestParser:
    """Тесты парсера аргументов."""

    def test_organize_arguments(self):
        args = create_parser().parse_args(
            ['--config', 'x.ini', 'organize', '--profile', 'a', '--profile', 'b', '--dry-run']
        )

        assert args.config == 'x.ini'
        assert args.command == 'organize'
        assert args.profile == ['a', 'b']
        assert args.dry_run is True

    def test_defaults(self):
        args = create_parser().parse_args(['profiles'])

        assert args.config == 'config/settings.ini'
        assert args.log_level is None
        assert args.verbose is False

    def test_scan_requires_profile(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(['scan'])

    @pytest.mark.parametrize('limit', ['0', '-5', 'ten'])
    def test_scan_limit_must_be_positive(self, limit):
        with pytest.raises(SystemExit):
            create_parser().parse_args(['scan', '--profile', 'p', '--limit', limit])

    def test_scan_limit(self):
        args = create_parser().parse_args(['scan', '--profile', 'p', '--limit', '3'])
        assert args.limit == 3

    def test_warn_alias_accepted(self):
        args = create_parser().parse_args(['--log-level', 'warn', 'profiles'])
        assert args.log_level == 'warn'


class TestCLISetup:
    """Тесты инициализации CLI."""

    def test_setup_success(self, config_file):
        cli = MediaOrganizerCLI()
        try:
            assert cli.setup(str(config_file), log_level='warn') is True
            assert cli.config.logging.level == 'warning'
            assert cli.organizer.profile_names() == ['photos', 'broken']
        finally:
            cli.logger.close()

    def test_setup_missing_config(self, tmp_path, capsys):
        cli = MediaOrganizerCLI()

        assert cli.setup(str(tmp_path / 'missing.ini')) is False
        assert cli.organizer is None
        assert 'Ошибка инициализации' in capsys.readouterr().out


class TestMain:
    """Тесты главной функции."""

    def test_no_command(self, capsys):
        assert main([]) == 1

    def test_organize_single_profile(self, config_file, source_dir, target_dir, capsys):
        make_file(source_dir / '20160705.jpg')

        code = main(['--config', str(config_file), 'organize', '--profile', 'photos'])

        assert code == 0
        assert (target_dir / '2016' / '2016-07-05' / '20160705.jpg').is_file()
        assert 'Перемещено: 1' in capsys.readouterr().out

    def test_organize_all_reports_invalid_profile(self, config_file, source_dir, target_dir, capsys):
        make_file(source_dir / '20160705.jpg')

        code = main(['--config', str(config_file), 'organize'])

        assert code == 1
        # Некорректный профиль не мешает выполнению остальных
        assert (target_dir / '2016' / '2016-07-05' / '20160705.jpg').is_file()
        assert 'broken' in capsys.readouterr().out

    def test_organize_dry_run(self, config_file, source_dir, target_dir):
        source = make_file(source_dir / '20160705.jpg')

        code = main(['--config', str(config_file), 'organize', '--profile', 'photos', '--dry-run'])

        assert code == 0
        assert source.exists()
        assert not (target_dir / '2016').exists()

    def test_unknown_profile(self, config_file, capsys):
        code = main(['--config', str(config_file), 'organize', '--profile', 'nope'])

        assert code == 1
        assert 'Неизвестные профили: nope' in capsys.readouterr().out

    def test_profiles_command(self, config_file, capsys):
        assert main(['--config', str(config_file), 'profiles']) == 0

        out = capsys.readouterr().out
        assert '[photos]' in out
        assert '[broken]' in out
        assert 'target_mask: photos' in out

    def test_scan_command(self, config_file, source_dir, target_dir, capsys):
        source = make_file(source_dir / '20160705.jpg')
        make_file(source_dir / 'nodate.jpg')

        assert main(['--config', str(config_file), 'scan', '--profile', 'photos']) == 0

        out = capsys.readouterr().out
        assert '2016-07-05 (file_name)' in out
        assert str(target_dir / '2016' / '2016-07-05' / '20160705.jpg') in out
        assert 'дата не определена' in out
        assert source.exists()

    def test_scan_limit_output(self, config_file, source_dir, target_dir, capsys):
        make_file(source_dir / '20160705.jpg')
        make_file(source_dir / '20160705.jpeg')
        make_file(source_dir / '20160706.jpg')

        assert main(['--config', str(config_file), 'scan', '--profile', 'photos', '--limit', '2']) == 0

        out = capsys.readouterr().out
        assert '20160705.jpeg' in out
        assert '20160706.jpg' not in out.split('и еще')[0]
        assert 'и еще 1 файлов' in out

    def test_scan_missing_source(self, config_file, capsys):
        assert main(['--config', str(config_file), 'scan', '--profile', 'broken']) == 1
        assert 'Каталог источника не найден' in capsys.readouterr().out

    def test_invalid_config(self, tmp_path, capsys):
        path = tmp_path / 'bad.ini'
        path.write_text("[logging]\nlevel = info\n", encoding='utf-8')

        assert main(['--config', str(path), 'profiles']) == 1
        assert 'нет ни одного профиля' in capsys.readouterr().out
