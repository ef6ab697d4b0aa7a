"""アップロードファイルモジュール

検証エンジンに渡すファイル情報（サイズ、拡張子、MIMEタイプ、解像度）を提供する。
ファイルパスとバイナリデータ（Streamlit のアップロードファイル等）の両方に対応する。

MIMEタイプの判定順序:
  1. PIL で画像として認識できた場合はその形式のMIMEタイプ
  2. 呼び出し元が指定したMIMEタイプ
  3. ファイル名から推測したMIMEタイプ
  4. application/octet-stream
"""

from __future__ import annotations

import io
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from PIL import Image

from .rule_validator import ArtifactMissingError

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class _ImageInfo:
    """PIL から読み取った画像情報"""

    format: str
    width: int
    height: int


def _read_image_info(source: Union[Path, bytes]) -> _ImageInfo | None:
    """画像形式と解像度を読み取る

    Returns:
        画像情報。画像として認識できない場合は None。
    """
    stream = io.BytesIO(source) if isinstance(source, bytes) else source
    try:
        with Image.open(stream) as img:
            if not img.format:
                return None
            width, height = img.size
            return _ImageInfo(format=img.format, width=width, height=height)
    except Exception as err:
        logger.debug("画像として認識できません: %s", err)
        return None


class UploadedFile:
    """検証対象のファイル

    ファイル内容は変更しない。画像情報は初回アクセス時に読み取りキャッシュする。

    Attributes:
        _path: ファイルパス（バイナリデータから生成した場合は None）
        _data: バイナリデータ（ファイルパスから生成した場合は None）
        _name: ファイル名
        _declared_type: 呼び出し元が指定したMIMEタイプ
    """

    def __init__(self, file_path: str | Path) -> None:
        """ファイルパスからUploadedFileを生成する

        Args:
            file_path: 検証対象のファイルパス

        Raises:
            ArtifactMissingError: ファイルが存在しない場合
        """
        path = Path(file_path)
        if not path.is_file():
            raise ArtifactMissingError(f"ファイルが見つかりません: {file_path}")

        self._path: Path | None = path
        self._data: bytes | None = None
        self._name = path.name
        self._declared_type: str | None = None
        self._image_info: _ImageInfo | None = None
        self._image_loaded = False

    @classmethod
    def from_bytes(
        cls,
        data: bytes,
        filename: str,
        content_type: str | None = None,
    ) -> UploadedFile:
        """バイナリデータからUploadedFileを生成する

        Args:
            data: ファイルのバイナリデータ
            filename: 元のファイル名（拡張子の判定に使用）
            content_type: アップロード時に申告されたMIMEタイプ

        Returns:
            UploadedFile インスタンス
        """
        instance = cls.__new__(cls)
        instance._path = None
        instance._data = bytes(data)
        instance._name = Path(filename).name
        instance._declared_type = content_type or None
        instance._image_info = None
        instance._image_loaded = False
        return instance

    @property
    def name(self) -> str:
        """ファイル名"""
        return self._name

    def size(self) -> int:
        """ファイルサイズ（バイト）"""
        if self._data is not None:
            return len(self._data)
        return self._path.stat().st_size

    def extension(self) -> str:
        """拡張子（小文字、先頭のドットなし。拡張子がない場合は空文字列）"""
        return Path(self._name).suffix.lower().lstrip(".")

    def content_type(self) -> str:
        """MIMEタイプ"""
        info = self._load_image_info()
        if info is not None:
            mime = Image.MIME.get(info.format)
            if mime:
                return mime

        if self._declared_type:
            return self._declared_type

        guessed, _ = mimetypes.guess_type(self._name)
        return guessed or DEFAULT_CONTENT_TYPE

    def is_image(self) -> bool:
        """PILで画像として認識できるかどうか"""
        return self._load_image_info() is not None

    def width(self) -> int:
        """画像の幅（画像でない場合は 0）"""
        info = self._load_image_info()
        return info.width if info is not None else 0

    def height(self) -> int:
        """画像の高さ（画像でない場合は 0）"""
        info = self._load_image_info()
        return info.height if info is not None else 0

    def dimensions(self) -> tuple[int, int]:
        """画像の解像度 (幅, 高さ)"""
        return self.width(), self.height()

    def _load_image_info(self) -> _ImageInfo | None:
        if not self._image_loaded:
            source = self._data if self._data is not None else self._path
            self._image_info = _read_image_info(source)
            self._image_loaded = True
        return self._image_info

    def __repr__(self) -> str:
        return f"UploadedFile(name={self._name!r}, size={self.size()})"
