"""Streamlit UI (app.py) のユニットテスト

テスト戦略:
  - 純粋関数（create_history_entry）: 直接呼び出しでテスト
  - Streamlit依存関数（validate_single_file等）: st をモックして直接テスト
  - UI描画関数: AppTest.from_function を使用してStreamlitコンポーネントをテスト

注意:
  Streamlit の AppTest は file_uploader をサポートしていないため、
  ファイルアップロード部分はヘルパー関数の直接テストで補完する。
  AppTest.from_function はクロージャ変数を参照できないため、
  モックオブジェクトを使うテストには直接呼び出し + st.mock を使用する。
"""

from __future__ import annotations

import io
from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest
from PIL import Image
from streamlit.testing.v1 import AppTest

from src.validators import ImageValidator, RuleValidator


# ---------------------------------------------------------------------------
# ヘルパー
# ---------------------------------------------------------------------------

def _create_test_image_bytes(
    fmt: str = "PNG",
    size: tuple[int, int] = (100, 50),
) -> bytes:
    """テスト用画像のバイナリデータを生成する"""
    img = Image.new("RGB", size, color=(255, 255, 255))
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def _make_uploaded_file(
    name: str,
    data: bytes,
    content_type: str = "image/png",
) -> MagicMock:
    """アップロードファイルのモックオブジェクトを作成する"""
    mock_file = MagicMock()
    mock_file.name = name
    mock_file.type = content_type
    mock_file.getvalue.return_value = data
    return mock_file


# ---------------------------------------------------------------------------
# create_history_entry のユニットテスト
# ---------------------------------------------------------------------------


class TestCreateHistoryEntry:
    """処理履歴エントリ作成関数のテスト"""

    def test_成功エントリの作成(self):
        """成功ステータスのエントリが正しく作成される"""
        from src.ui.app import create_history_entry

        entry = create_history_entry(
            filename="test.png",
            status="success",
        )

        assert entry["filename"] == "test.png"
        assert entry["status"] == "success"
        assert "timestamp" in entry
        assert "error_message" not in entry

    def test_エラーエントリの作成(self):
        """エラーステータスのエントリにエラーメッセージが含まれる"""
        from src.ui.app import create_history_entry

        entry = create_history_entry(
            filename="bad.png",
            status="error",
            error_message="拡張子が不正です",
        )

        assert entry["status"] == "error"
        assert entry["error_message"] == "拡張子が不正です"

    def test_タイムスタンプの形式(self):
        """タイムスタンプが YYYY-MM-DD HH:MM:SS 形式である"""
        from src.ui.app import create_history_entry

        entry = create_history_entry(filename="test.png", status="success")

        parsed = datetime.strptime(entry["timestamp"], "%Y-%m-%d %H:%M:%S")
        assert parsed is not None


# ---------------------------------------------------------------------------
# validate_single_file のユニットテスト
# ---------------------------------------------------------------------------


class TestValidateSingleFile:
    """単一ファイル検証関数のテスト

    validate_single_file は st.error() を呼ぶため、
    st をモックして直接テストする。
    """

    def test_ルールを満たせば成功エントリを返す(self):
        from src.ui.app import validate_single_file

        validator = ImageValidator().add_rule("ext", "拡張子が不正です", "png")

        with patch("src.ui.app.st") as mock_st:
            passed, entry = validate_single_file(
                validator, _create_test_image_bytes(), "ok.png"
            )

        assert passed is True
        assert entry["status"] == "success"
        assert entry["filename"] == "ok.png"
        mock_st.error.assert_not_called()

    def test_検証器にファイルが設定される(self):
        from src.ui.app import validate_single_file

        validator = RuleValidator()

        with patch("src.ui.app.st"):
            validate_single_file(validator, b"abc", "memo.txt", "text/plain")

        uploaded = validator.get_file()
        assert uploaded.name == "memo.txt"
        assert uploaded.size() == 3
        assert uploaded.content_type() == "text/plain"

    def test_ValidationError時はルールのメッセージを表示する(self):
        from src.ui.app import validate_single_file

        validator = RuleValidator().add_rule(
            "ext", "Invalid extension", [["png", "gif"]]
        )

        with patch("src.ui.app.st") as mock_st:
            passed, entry = validate_single_file(
                validator, b"data", "photo.jpg"
            )

        assert passed is False
        assert entry["status"] == "error"
        assert entry["error_message"] == "Invalid extension"
        error_arg = mock_st.error.call_args[0][0]
        assert "Invalid extension" in error_arg
        assert "photo.jpg" in error_arg

    def test_UnknownCheckError時は設定エラーとして表示する(self):
        from src.ui.app import validate_single_file

        validator = RuleValidator().add_rule("foobar", "Invalid method")

        with patch("src.ui.app.st") as mock_st:
            passed, entry = validate_single_file(validator, b"data", "a.png")

        assert passed is False
        assert "foobar" in entry["error_message"]
        error_arg = mock_st.error.call_args[0][0]
        assert "設定" in error_arg

    def test_予期しない例外時にも適切にハンドリングされる(self):
        """チェック内の RuntimeError 等でもクラッシュせずエラーを返す"""
        from src.ui.app import validate_single_file

        def _broken(artifact):
            raise RuntimeError("予期しないエラー")

        validator = RuleValidator().register_check("broken", _broken)
        validator.add_rule("broken", "失敗")

        with patch("src.ui.app.st") as mock_st:
            passed, entry = validate_single_file(validator, b"data", "a.png")

        assert passed is False
        assert entry["status"] == "error"
        assert "予期しないエラー" in entry["error_message"]
        mock_st.error.assert_called_once()


# ---------------------------------------------------------------------------
# process_uploaded_files のユニットテスト
# ---------------------------------------------------------------------------


class TestProcessUploadedFiles:
    """複数ファイル検証関数のテスト"""

    @pytest.fixture
    def mock_session(self) -> dict:
        return {"processing_history": []}

    def test_ファイルごとに履歴が追加される(self, mock_session):
        from src.ui.app import process_uploaded_files

        files = [
            _make_uploaded_file("a.png", _create_test_image_bytes()),
            _make_uploaded_file("b.gif", _create_test_image_bytes(fmt="GIF")),
        ]
        settings = {"allowed_extensions": ["png"]}

        with patch("src.ui.app.st") as mock_st:
            mock_st.session_state = mock_session
            passed_count = process_uploaded_files(files, settings)

        assert passed_count == 1
        history = mock_session["processing_history"]
        assert [entry["filename"] for entry in history] == ["a.png", "b.gif"]
        assert [entry["status"] for entry in history] == ["success", "error"]
        mock_st.success.assert_called_once()

    def test_ファイルごとに新しい検証器を生成する(self, mock_session):
        from src.ui.app import process_uploaded_files

        files = [
            _make_uploaded_file("a.png", _create_test_image_bytes()),
            _make_uploaded_file("b.png", _create_test_image_bytes()),
        ]

        with patch("src.ui.app.st") as mock_st, patch(
            "src.ui.app.create_upload_validator",
            side_effect=lambda **kwargs: ImageValidator(),
        ) as mock_factory:
            mock_st.session_state = mock_session
            process_uploaded_files(files, {"max_file_size": 100})

        assert mock_factory.call_count == 2
        mock_factory.assert_called_with(max_file_size=100)

    def test_空リストでは何もしない(self, mock_session):
        from src.ui.app import process_uploaded_files

        with patch("src.ui.app.st") as mock_st:
            mock_st.session_state = mock_session
            assert process_uploaded_files([], {}) == 0

        assert mock_session["processing_history"] == []


# ---------------------------------------------------------------------------
# UIコンポーネント描画のテスト（AppTest.from_function 使用）
# ---------------------------------------------------------------------------


class TestUIRendering:
    """UI描画関数のテスト"""

    def test_ヘッダーが表示される(self):
        def _run():
            from src.ui.app import render_header
            render_header()

        at = AppTest.from_function(_run)
        at.run()

        assert len(at.title) > 0
        assert "検証" in at.title[0].value

    def test_検証実行ボタンが表示される(self):
        def _run():
            from src.ui.app import render_validate_button
            render_validate_button()

        at = AppTest.from_function(_run)
        at.run()

        button_labels = [b.label for b in at.button]
        assert "検証実行" in button_labels

    def test_サイドバーに設定項目が表示される(self):
        def _run():
            from src.ui.app import render_settings
            render_settings()

        at = AppTest.from_function(_run)
        at.run()

        assert not at.exception
        assert len(at.sidebar.number_input) == 3
        assert len(at.sidebar.multiselect) == 2

    def test_処理履歴が空の場合は案内を表示する(self):
        def _run():
            import streamlit as st
            st.session_state["processing_history"] = []
            from src.ui.app import render_processing_history
            render_processing_history()

        at = AppTest.from_function(_run)
        at.run()

        assert len(at.info) > 0
        assert "履歴" in at.info[0].value

    def test_ファイルアップローダーが描画される(self):
        def _run():
            from src.ui.app import render_file_uploader
            render_file_uploader()

        at = AppTest.from_function(_run)
        at.run()

        # file_uploader は AppTest では UnknownElement として扱われる
        assert not at.exception
