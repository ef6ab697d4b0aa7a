"""アップロード画像検証アプリ

Streamlit を使用したファイル検証 Web アプリケーション。
サイドバーで検証ルールを設定し、アップロードされた画像ごとに
ルールベースの検証を実行して結果と処理履歴を表示する。
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

# プロジェクトルートをsys.pathに追加（Streamlit Cloud対応）
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from datetime import datetime
from typing import Any

import streamlit as st

# app.pyはStreamlitのエントリーポイントとして直接実行されるため、
# 絶対インポートを使用する必要がある（上記のsys.path設定により動作）
from src.validators import (
    ArtifactMissingError,
    RuleValidator,
    UnknownCheckError,
    UploadedFile,
    ValidationError,
    create_upload_validator,
)
from src.validators.presets import (
    DEFAULT_ALLOWED_EXTENSIONS,
    DEFAULT_ALLOWED_TYPES,
    DEFAULT_MAX_DIMENSIONS,
    DEFAULT_MAX_FILE_SIZE,
)

logger = logging.getLogger(__name__)

# サイドバーで選択できる拡張子とMIMEタイプ
EXTENSION_CHOICES = ["jpg", "jpeg", "png", "bmp", "gif", "webp", "tiff"]
TYPE_CHOICES = [
    "image/jpeg",
    "image/png",
    "image/bmp",
    "image/gif",
    "image/webp",
    "image/tiff",
]


def initialize_session_state() -> None:
    """セッション状態を初期化する

    初回起動時のみデフォルト値を設定し、再実行時は既存値を保持する。
    """
    if "processing_history" not in st.session_state:
        st.session_state["processing_history"] = []


def create_history_entry(
    *,
    filename: str,
    status: str,
    error_message: str = "",
) -> dict:
    """処理履歴エントリを作成する（イミュータブル）

    Args:
        filename: 検証対象のファイル名
        status: 検証結果（"success" または "error"）
        error_message: エラー発生時のメッセージ

    Returns:
        処理履歴エントリの辞書
    """
    entry = {
        "filename": filename,
        "status": status,
        "timestamp": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
    }
    if error_message:
        return {**entry, "error_message": error_message}
    return entry


def validate_single_file(
    validator: RuleValidator,
    file_data: bytes,
    filename: str,
    content_type: str | None = None,
) -> tuple[bool, dict]:
    """単一ファイルの検証を実行する

    Args:
        validator: ルール登録済みの検証器（ファイルは未設定でよい）
        file_data: ファイルのバイナリデータ
        filename: ファイル名
        content_type: アップロード時に申告されたMIMEタイプ

    Returns:
        (検証成功かどうか, 処理履歴エントリ) のタプル
    """
    try:
        validator.set_file(
            UploadedFile.from_bytes(file_data, filename, content_type)
        )
        validator.validate()
        history_entry = create_history_entry(
            filename=filename,
            status="success",
        )
        return True, history_entry
    except ValidationError as err:
        st.error(f"{filename}: {err}")
        history_entry = create_history_entry(
            filename=filename,
            status="error",
            error_message=str(err),
        )
        return False, history_entry
    except (ArtifactMissingError, UnknownCheckError) as err:
        error_msg = f"検証ルールの設定に誤りがあります: {err}"
        st.error(error_msg)
        history_entry = create_history_entry(
            filename=filename,
            status="error",
            error_message=error_msg,
        )
        return False, history_entry
    except Exception as err:
        logger.exception("検証中に予期しないエラーが発生しました: %s", filename)
        error_msg = f"予期しないエラーが発生しました: {err}"
        st.error(error_msg)
        history_entry = create_history_entry(
            filename=filename,
            status="error",
            error_message=str(err),
        )
        return False, history_entry


def process_uploaded_files(
    uploaded_files: list,
    settings: dict[str, Any],
) -> int:
    """アップロードされた複数ファイルを1件ずつ検証する

    検証器はファイルごとに新しく生成する。
    処理履歴はst.session_stateに保存される。

    Args:
        uploaded_files: アップロードされたファイルのリスト
        settings: create_upload_validator に渡す設定

    Returns:
        検証に成功したファイル数
    """
    passed_count = 0

    for uploaded_file in uploaded_files:
        validator = create_upload_validator(**settings)
        passed, history_entry = validate_single_file(
            validator,
            uploaded_file.getvalue(),
            uploaded_file.name,
            getattr(uploaded_file, "type", None),
        )

        # 処理履歴に追加（イミュータブルに新しいリストを作成）
        st.session_state["processing_history"] = [
            *st.session_state["processing_history"],
            history_entry,
        ]

        if passed:
            st.success(f"{uploaded_file.name}: すべてのルールを満たしています")
            passed_count += 1

    return passed_count


def render_header() -> None:
    """ページヘッダーを描画する"""
    st.title("アップロード画像検証アプリ")


def render_settings() -> dict[str, Any]:
    """サイドバーに検証ルールの設定を描画する

    Returns:
        create_upload_validator に渡す設定の辞書
    """
    st.sidebar.header("検証ルール")

    max_size_mb = st.sidebar.number_input(
        "最大ファイルサイズ（MB）",
        min_value=0.1,
        max_value=100.0,
        value=DEFAULT_MAX_FILE_SIZE / (1024 * 1024),
        step=0.5,
    )
    allowed_extensions = st.sidebar.multiselect(
        "許可する拡張子",
        options=EXTENSION_CHOICES,
        default=list(DEFAULT_ALLOWED_EXTENSIONS),
    )
    allowed_types = st.sidebar.multiselect(
        "許可するMIMEタイプ",
        options=TYPE_CHOICES,
        default=list(DEFAULT_ALLOWED_TYPES),
    )
    max_w, max_h = DEFAULT_MAX_DIMENSIONS
    max_width = st.sidebar.number_input(
        "最大幅（px）", min_value=1, value=max_w, step=100
    )
    max_height = st.sidebar.number_input(
        "最大高さ（px）", min_value=1, value=max_h, step=100
    )

    return {
        "max_file_size": int(max_size_mb * 1024 * 1024),
        "allowed_extensions": allowed_extensions,
        "allowed_types": allowed_types,
        "max_dimensions": (int(max_width), int(max_height)),
    }


def render_file_uploader() -> list:
    """ファイルアップローダーを描画する

    Returns:
        アップロードされたファイルのリスト（未選択時は空リスト）
    """
    uploaded_files = st.file_uploader(
        "検証するファイルをアップロード",
        accept_multiple_files=True,
        help="サイドバーで設定したルールで1件ずつ検証します",
    )
    return uploaded_files or []


def render_validate_button() -> bool:
    """検証実行ボタンを描画する

    Returns:
        ボタンが押されたかどうか
    """
    return st.button("検証実行", type="primary")


def render_processing_history() -> None:
    """処理履歴を描画する"""
    st.subheader("処理履歴")

    history = st.session_state["processing_history"]

    if not history:
        st.info("まだ処理履歴がありません。")
        return

    for entry in reversed(history):
        filename = entry["filename"]
        status = entry["status"]
        timestamp = entry["timestamp"]

        if status == "success":
            st.write(f"- {filename}: 合格 ({timestamp})")
        else:
            error_msg = entry.get("error_message", "不明なエラー")
            st.write(f"- {filename}: 不合格 ({timestamp}) - {error_msg}")


def main() -> None:
    """アプリケーションのメインエントリポイント"""
    st.set_page_config(
        page_title="アップロード画像検証",
        page_icon="",
        layout="centered",
    )

    initialize_session_state()

    render_header()

    settings = render_settings()

    uploaded_files = render_file_uploader()

    if render_validate_button():
        if not uploaded_files:
            st.error("ファイルをアップロードしてください。")
        else:
            with st.spinner("検証中..."):
                process_uploaded_files(uploaded_files, settings)

    render_processing_history()


if __name__ == "__main__":
    main()
