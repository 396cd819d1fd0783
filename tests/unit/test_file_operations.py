"""
Unit tests for FileOperations: name validation, rename and trash
"""
from unittest.mock import patch, MagicMock

import pytest

from core import file_operations
from core.file_operations import FileOperations, MAX_NAME_LENGTH


class TestValidateNewName:
    """Tests for validate_new_name()"""

    @pytest.mark.parametrize('name', [
        '',
        '   ',
        '.',
        '..',
        '.hidden',
        'a' * (MAX_NAME_LENGTH + 1),
        'a:b',
        'nul\x00byte',
        'tab\there',
        'bell\x07',
        'c1\x85control',
        'dir/name',
    ])
    def test_rejected(self, name):
        assert FileOperations.validate_new_name(name) is not None

    @pytest.mark.parametrize('name', [
        'photo.png',
        'holiday 2024 (1).jpg',
        'a' * MAX_NAME_LENGTH,
        'ünïcödé.gif',
        'name.with.dots',
    ])
    def test_accepted(self, name):
        assert FileOperations.validate_new_name(name) is None

    def test_leading_dot_reason(self):
        assert 'dot' in FileOperations.validate_new_name('.hidden')


class TestRenameItem:
    """Tests for rename_item()"""

    def test_rename(self, tmp_path):
        old = tmp_path / 'a.png'
        old.write_bytes(b'x')

        success, result = FileOperations.rename_item(old, 'b.png')

        assert success is True
        assert result == str(tmp_path / 'b.png')
        assert not old.exists()
        assert (tmp_path / 'b.png').read_bytes() == b'x'

    def test_same_name_is_noop(self, tmp_path):
        old = tmp_path / 'a.png'
        old.write_bytes(b'x')
        assert FileOperations.rename_item(old, 'a.png') == (True, str(old))
        assert old.exists()

    def test_collision(self, tmp_path):
        """Test that renaming onto an existing item fails and leaves both alone"""
        old = tmp_path / 'a.png'
        old.write_bytes(b'a')
        existing = tmp_path / 'b.png'
        existing.write_bytes(b'b')

        success, message = FileOperations.rename_item(old, 'b.png')

        assert success is False
        assert 'already exists' in message
        assert old.read_bytes() == b'a'
        assert existing.read_bytes() == b'b'

    def test_missing_source(self, tmp_path):
        success, message = FileOperations.rename_item(tmp_path / 'missing.png', 'b.png')
        assert success is False
        assert message


class TestMoveToTrash:
    """Tests for move_to_trash()"""

    def test_qt_trash(self, tmp_path, monkeypatch):
        target = tmp_path / 'a.png'
        target.write_bytes(b'x')
        trashed = []

        class FakeQFile:
            def __init__(self, path):
                self.path = path

            def moveToTrash(self):
                trashed.append(self.path)
                return True

        monkeypatch.setattr(file_operations, 'QFile', FakeQFile)
        assert FileOperations.move_to_trash(target) == (True, "")
        assert trashed == [str(target)]

    @patch('subprocess.run')
    def test_falls_back_to_gio(self, mock_run, tmp_path, monkeypatch):
        monkeypatch.setattr(file_operations, 'QFile',
                            lambda path: MagicMock(moveToTrash=MagicMock(return_value=False)))
        mock_run.return_value = MagicMock(returncode=0)

        assert FileOperations.move_to_trash(tmp_path / 'a.png') == (True, "")
        assert mock_run.call_args[0][0] == ['gio', 'trash', str(tmp_path / 'a.png')]

    @patch('subprocess.run')
    def test_no_trash_available(self, mock_run, tmp_path, monkeypatch):
        """Test that without any trash the item is kept and failure is reported"""
        monkeypatch.setattr(file_operations, 'QFile',
                            lambda path: MagicMock(moveToTrash=MagicMock(return_value=False)))
        mock_run.side_effect = FileNotFoundError()
        target = tmp_path / 'a.png'
        target.write_bytes(b'x')

        success, message = FileOperations.move_to_trash(target)

        assert success is False
        assert message
        assert target.exists()
        assert mock_run.call_count == 2


class TestIsReadableDirectory:
    """Tests for is_readable_directory()"""

    def test_directory(self, tmp_path):
        assert FileOperations.is_readable_directory(tmp_path) is True

    def test_file(self, tmp_path):
        path = tmp_path / 'a.png'
        path.write_bytes(b'x')
        assert FileOperations.is_readable_directory(path) is False

    def test_missing(self, tmp_path):
        assert FileOperations.is_readable_directory(tmp_path / 'missing') is False
