"""
Tests for the run.py launcher script.

Validates each step of the launcher without actually starting services.
"""
import sys
import urllib.error
from unittest.mock import MagicMock, Mock, patch

# Import functions from run.py at project root
sys.path.insert(0, str(__import__("pathlib").Path(__file__).resolve().parent.parent))
import run


class TestCheckPythonDeps:
    """Test Python dependency checking."""

    def test_all_deps_present(self):
        """All required packages are installed in the test environment."""
        assert run.check_python_deps() is True

    @patch("builtins.__import__", side_effect=ImportError("no module"))
    def test_missing_dep_returns_false(self, mock_import):
        assert run.check_python_deps() is False


class TestPrepareDatabase:
    """Test database creation before the server starts."""

    def test_creates_database_at_given_path(self, tmp_path, monkeypatch):
        monkeypatch.setenv("FOSSINVOICE_DB_PATH", "")
        db_path = tmp_path / "sub" / "invoices.sqlite"
        assert run.prepare_database(str(db_path)) is True
        assert db_path.exists()

    def test_uses_data_root_by_default(self, tmp_path, monkeypatch):
        monkeypatch.setenv("FOSSINVOICE_DB_PATH", "")
        monkeypatch.setattr("fossinvoice.web.dependencies.DATA_ROOT", tmp_path)
        assert run.prepare_database(None) is True
        assert (tmp_path / "invoices.sqlite").exists()

    def test_unopenable_path_returns_false(self, tmp_path, monkeypatch):
        monkeypatch.setenv("FOSSINVOICE_DB_PATH", "")
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("x")
        assert run.prepare_database(str(blocker / "invoices.sqlite")) is False


class TestOpenBrowser:
    """Test waiting for the server before opening the docs page."""

    @patch("webbrowser.open")
    @patch("urllib.request.urlopen")
    def test_opens_when_ready(self, mock_urlopen, mock_open):
        mock_resp = MagicMock()
        mock_resp.__enter__ = Mock(return_value=Mock(status=200))
        mock_resp.__exit__ = Mock(return_value=False)
        mock_urlopen.return_value = mock_resp

        run.open_browser()
        mock_open.assert_called_once_with(run.DOCS_URL)

    @patch("time.sleep")
    @patch("webbrowser.open")
    @patch("urllib.request.urlopen", side_effect=urllib.error.URLError("refused"))
    def test_gives_up_without_opening(self, mock_urlopen, mock_open, mock_sleep):
        run.open_browser()
        mock_open.assert_not_called()
        assert mock_urlopen.call_count == 30


class TestMainFlow:
    """Test the main() orchestration flow."""

    @patch("run.launch_app")
    @patch("run.prepare_database", return_value=True)
    @patch("run.check_python_deps", return_value=True)
    def test_full_success_flow(self, mock_deps, mock_db, mock_launch):
        result = run.main([])
        assert result == 0
        mock_deps.assert_called_once()
        mock_db.assert_called_once_with(None)
        mock_launch.assert_called_once()

    @patch("run.launch_app")
    @patch("run.prepare_database", return_value=True)
    @patch("run.check_python_deps", return_value=True)
    def test_db_path_argument(self, mock_deps, mock_db, mock_launch):
        assert run.main(["/tmp/custom.sqlite"]) == 0
        mock_db.assert_called_once_with("/tmp/custom.sqlite")

    @patch("run.check_python_deps", return_value=False)
    def test_missing_deps_exits(self, mock_deps):
        assert run.main([]) == 1

    @patch("run.launch_app")
    @patch("run.prepare_database", return_value=False)
    @patch("run.check_python_deps", return_value=True)
    def test_database_failure_exits(self, mock_deps, mock_db, mock_launch):
        assert run.main([]) == 1
        mock_launch.assert_not_called()
