"""アップロード画像用の検証ルール設定

よく使うルール一式（サイズ、拡張子、MIMEタイプ、解像度）を登録した
ImageValidator を生成する。
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from .image_validator import ImageValidator

DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024

DEFAULT_ALLOWED_EXTENSIONS: tuple[str, ...] = ("jpg", "jpeg", "png", "bmp")

DEFAULT_ALLOWED_TYPES: tuple[str, ...] = (
    "image/jpeg",
    "image/png",
    "image/bmp",
)

DEFAULT_MAX_DIMENSIONS: tuple[int, int] = (10000, 10000)

DEFAULT_MESSAGES: dict[str, str] = {
    "size": "ファイルサイズが制限を超えています",
    "ext": "許可されていないファイル拡張子です",
    "type": "許可されていないファイル形式です",
    "dimensions": "画像の解像度が制限を超えています",
}


def create_upload_validator(
    *,
    max_file_size: int | None = DEFAULT_MAX_FILE_SIZE,
    allowed_extensions: Iterable[str] | None = DEFAULT_ALLOWED_EXTENSIONS,
    allowed_types: Iterable[str] | None = DEFAULT_ALLOWED_TYPES,
    max_dimensions: tuple[int, int] | None = DEFAULT_MAX_DIMENSIONS,
    messages: Mapping[str, str] | None = None,
) -> ImageValidator:
    """アップロード画像用のImageValidatorを生成する

    ルールは size -> ext -> type -> dimensions の順に登録される。
    None を指定した項目のルールは登録しない。

    Args:
        max_file_size: 最大ファイルサイズ（バイト）。デフォルトは10MB。
        allowed_extensions: 許可する拡張子（小文字、ドットなし）
        allowed_types: 許可するMIMEタイプ
        max_dimensions: 最大解像度 (幅, 高さ)
        messages: チェック名ごとのエラーメッセージ（デフォルトを上書き）

    Returns:
        ルール登録済みのImageValidator（ファイルは未設定）
    """
    texts = {**DEFAULT_MESSAGES, **(messages or {})}
    validator = ImageValidator()

    if max_file_size is not None:
        validator.add_rule("size", texts["size"], max_file_size)

    if allowed_extensions is not None:
        extensions = [ext.lower().lstrip(".") for ext in allowed_extensions]
        validator.add_rule("ext", texts["ext"], [extensions])

    if allowed_types is not None:
        validator.add_rule("type", texts["type"], [list(allowed_types)])

    if max_dimensions is not None:
        max_w, max_h = max_dimensions
        validator.add_rule("dimensions", texts["dimensions"], [max_w, max_h])

    return validator
