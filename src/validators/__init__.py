"""ファイル検証パッケージ

ルールベースのファイル検証機能を提供する。
チェック名・エラーメッセージ・パラメータの組でルールを登録し、
一度の validate() ですべてのルールを評価する。

使用例::

    from src.validators import ImageValidator, UploadedFile

    validator = ImageValidator().set_file(UploadedFile("/uploads/image.jpg"))
    validator.add_rule("size", "ファイルサイズが大きすぎます", 130000)
    validator.add_rule("ext", "拡張子が不正です", [["jpg", "png"]])
    validator.validate()
"""

from src.validators.image_validator import ImageArtifact, ImageValidator
from src.validators.presets import create_upload_validator
from src.validators.rule_validator import (
    ArtifactMissingError,
    FileArtifact,
    RuleDefinition,
    RuleValidator,
    UnknownCheckError,
    ValidationError,
    ValidatorError,
    check,
)
from src.validators.uploaded_file import UploadedFile

__all__ = [
    "ArtifactMissingError",
    "FileArtifact",
    "ImageArtifact",
    "ImageValidator",
    "RuleDefinition",
    "RuleValidator",
    "UnknownCheckError",
    "UploadedFile",
    "ValidationError",
    "ValidatorError",
    "check",
    "create_upload_validator",
]
