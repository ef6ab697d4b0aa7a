"""画像検証モジュール

RuleValidator に画像の解像度チェックを追加する。
画像として認識できないファイルに対しては、すべての解像度チェックが失敗する。
"""

from __future__ import annotations

from typing import Protocol

from .rule_validator import FileArtifact, RuleValidator, check


class ImageArtifact(FileArtifact, Protocol):
    """画像ファイルが追加で提供するインターフェース"""

    def is_image(self) -> bool: ...

    def width(self) -> int: ...

    def height(self) -> int: ...


class ImageValidator(RuleValidator):
    """画像用のルールベース検証クラス

    組み込みチェック（size / ext / type）に加えて、
    幅・高さの完全一致、最小値、最大値のチェックを提供する。
    最小値・最大値はいずれも境界値を含む。
    """

    def _image(self) -> ImageArtifact | None:
        """検証対象が画像であれば返す（画像でなければ None）"""
        artifact = self._require_artifact()
        if not artifact.is_image():
            return None
        return artifact

    @check("width")
    def width(self, size: int) -> bool:
        """画像の幅が指定値と一致するかどうか"""
        image = self._image()
        return image is not None and image.width() == size

    @check("height")
    def height(self, size: int) -> bool:
        """画像の高さが指定値と一致するかどうか"""
        image = self._image()
        return image is not None and image.height() == size

    @check("min_width")
    def min_width(self, size: int) -> bool:
        image = self._image()
        return image is not None and image.width() >= size

    @check("min_height")
    def min_height(self, size: int) -> bool:
        image = self._image()
        return image is not None and image.height() >= size

    @check("max_width")
    def max_width(self, size: int) -> bool:
        image = self._image()
        return image is not None and image.width() <= size

    @check("max_height")
    def max_height(self, size: int) -> bool:
        image = self._image()
        return image is not None and image.height() <= size

    @check("dimensions")
    def dimensions(self, max_width: int, max_height: int) -> bool:
        """画像の解像度が (幅, 高さ) の上限以内かどうか

        Args:
            max_width: 最大幅（ピクセル）
            max_height: 最大高さ（ピクセル）
        """
        image = self._image()
        if image is None:
            return False
        return image.width() <= max_width and image.height() <= max_height
