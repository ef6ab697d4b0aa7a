"""ルールベース検証エンジンモジュール

アップロードされた単一ファイルに対して、名前付きの検証ルールを登録し、
一度の実行ですべてのルールを評価する。

実行仕様:
  - ルールは「チェック名 -> (エラーメッセージ, パラメータ)」として登録する
  - チェック名の解決は実行時に行う（登録時には存在確認をしない）
  - 最初に失敗したルールで処理を中断し、そのメッセージで例外を送出する
  - ルールが1件も登録されていない場合はファイル未設定でも成功とする

スレッドセーフではない。複数ファイルを並行して検証する場合は
ファイルごとに別インスタンスを生成すること。
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Protocol, TypeVar

logger = logging.getLogger(__name__)

_F = TypeVar("_F", bound=Callable[..., Any])

# チェックメソッドに付与する属性名
_CHECK_ATTR = "__check_name__"


# ---------------------------------------------------------------------------
# カスタム例外
# ---------------------------------------------------------------------------


class ValidatorError(Exception):
    """検証エンジンが送出する例外の基底クラス"""


class ArtifactMissingError(ValidatorError):
    """検証対象のファイルが存在しない場合のエラー"""


class UnknownCheckError(ValidatorError):
    """ルールに対応するチェックが見つからない場合のエラー

    入力データの不正ではなく、ルール設定の誤りを表す。
    """


class ValidationError(ValidatorError):
    """チェックが失敗した場合のエラー

    Attributes:
        message: ルールに登録されたエラーメッセージ
        check_name: 失敗したチェック名
    """

    def __init__(self, message: str, check_name: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.check_name = check_name


# ---------------------------------------------------------------------------
# 型定義
# ---------------------------------------------------------------------------


class FileArtifact(Protocol):
    """検証対象ファイルが提供するインターフェース"""

    def size(self) -> int: ...

    def extension(self) -> str: ...

    def content_type(self) -> str: ...


@dataclass(frozen=True)
class RuleDefinition:
    """登録済みの検証ルールを表すイミュータブルなデータクラス

    Attributes:
        check_name: 実行するチェック名
        message: チェック失敗時のエラーメッセージ
        params: チェックに位置引数として渡すパラメータ
    """

    check_name: str
    message: str
    params: tuple[Any, ...] = ()


# ---------------------------------------------------------------------------
# ヘルパー
# ---------------------------------------------------------------------------


def check(name: str) -> Callable[[_F], _F]:
    """メソッドを名前付きチェックとして登録するデコレータ

    Args:
        name: add_rule() で指定するチェック名

    Returns:
        メソッドをそのまま返すデコレータ
    """

    def decorator(func: _F) -> _F:
        setattr(func, _CHECK_ATTR, name)
        return func

    return decorator


def _collect_checks(cls: type) -> dict[str, str]:
    """クラス階層からチェック名 -> メソッド名の対応表を作成する

    基底クラスから順に走査するため、サブクラスの定義が優先される。
    """
    table: dict[str, str] = {}
    for klass in reversed(cls.__mro__):
        for attr_name, value in vars(klass).items():
            check_name = getattr(value, _CHECK_ATTR, None)
            if check_name is not None:
                table[check_name] = attr_name
    return table


def _normalize_params(params: Any) -> tuple[Any, ...]:
    """ルールのパラメータを位置引数のタプルに正規化する

    リスト・タプルはそのまま引数列として扱い、
    それ以外の値（文字列を含む）は1要素のタプルにする。
    """
    if params is None:
        return ()
    if isinstance(params, (list, tuple)):
        return tuple(params)
    return (params,)


def _as_whitelist(allowed: Any) -> tuple[Any, ...]:
    """許可リストをタプルに変換する（文字列単体は1要素として扱う）"""
    if allowed is None:
        return ()
    if isinstance(allowed, str):
        return (allowed,)
    return tuple(allowed)


# ---------------------------------------------------------------------------
# RuleValidator クラス
# ---------------------------------------------------------------------------


class RuleValidator:
    """ルールベースのファイル検証クラス

    組み込みチェックとして size / ext / type を提供する。
    サブクラスは @check デコレータでチェックを追加できる。

    使用例::

        validator = RuleValidator().set_file(uploaded)
        validator.add_rule("size", "ファイルサイズが大きすぎます", 130000)
        validator.add_rule("ext", "拡張子が不正です", [["png", "gif"]])
        validator.validate()

    Attributes:
        _rules: チェック名 -> RuleDefinition の対応（登録順に実行）
        _artifact: 検証対象ファイル（未設定の場合は None）
        _instance_checks: インスタンス単位で追加されたチェック
    """

    _check_table: dict[str, str] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls._check_table = _collect_checks(cls)

    def __init__(self, artifact: FileArtifact | None = None) -> None:
        """RuleValidatorを初期化する

        Args:
            artifact: 検証対象ファイル。後から set_file() でも設定できる。
        """
        self._rules: dict[str, RuleDefinition] = {}
        self._artifact = artifact
        self._instance_checks: dict[str, Callable[..., bool]] = {}

    # -------------------------------------------------------------------
    # ルール・ファイルの設定
    # -------------------------------------------------------------------

    def add_rule(
        self,
        check_name: str,
        message: str,
        params: Any = (),
    ) -> RuleValidator:
        """検証ルールを追加する（同名のルールは上書き）

        Args:
            check_name: 実行するチェック名
            message: チェック失敗時のエラーメッセージ
            params: チェックに渡すパラメータ。リスト・タプルは引数列、
                それ以外の値は単一の引数として扱う。

        Returns:
            メソッドチェーン用に自身を返す
        """
        self._rules[check_name] = RuleDefinition(
            check_name=check_name,
            message=str(message),
            params=_normalize_params(params),
        )
        return self

    def clear_rules(self) -> RuleValidator:
        """登録済みのルールをすべて削除する"""
        self._rules = {}
        return self

    @property
    def rules(self) -> dict[str, RuleDefinition]:
        """登録済みルールのコピーを返す"""
        return dict(self._rules)

    def set_artifact(self, artifact: FileArtifact) -> RuleValidator:
        """検証対象ファイルを設定する

        Args:
            artifact: 検証対象ファイル

        Returns:
            メソッドチェーン用に自身を返す
        """
        self._artifact = artifact
        return self

    def get_artifact(self) -> FileArtifact | None:
        """検証対象ファイルを返す（未設定の場合は None）"""
        return self._artifact

    set_file = set_artifact
    get_file = get_artifact

    # -------------------------------------------------------------------
    # チェックの解決
    # -------------------------------------------------------------------

    def register_check(
        self,
        name: str,
        func: Callable[..., bool],
    ) -> RuleValidator:
        """このインスタンスだけで使えるチェックを追加する

        Args:
            name: チェック名（組み込みチェックと同名の場合は上書き）
            func: func(artifact, *params) -> bool の形式の関数

        Returns:
            メソッドチェーン用に自身を返す
        """
        self._instance_checks[name] = func
        return self

    def has_check(self, name: str) -> bool:
        """チェック名が解決可能かどうかを返す"""
        return name in self._instance_checks or name in self._check_table

    def check_names(self) -> list[str]:
        """利用可能なチェック名の一覧を返す"""
        return sorted({*self._check_table, *self._instance_checks})

    def _resolve_check(self, name: str) -> Callable[..., bool]:
        """チェック名から呼び出し可能なチェックを取得する

        Raises:
            UnknownCheckError: チェックが存在しない場合
        """
        func = self._instance_checks.get(name)
        if func is not None:
            return functools.partial(func, self._require_artifact())

        attr_name = self._check_table.get(name)
        if attr_name is None:
            raise UnknownCheckError(
                f"Validation method {name} does not exist"
            )
        return getattr(self, attr_name)

    def _require_artifact(self) -> FileArtifact:
        if self._artifact is None:
            raise ArtifactMissingError("No file present for validation")
        return self._artifact

    # -------------------------------------------------------------------
    # 組み込みチェック
    # -------------------------------------------------------------------

    @check("size")
    def size(self, max_bytes: int) -> bool:
        """ファイルサイズが上限以下かどうか

        Args:
            max_bytes: 最大ファイルサイズ（バイト）
        """
        return self._require_artifact().size() <= max_bytes

    @check("ext")
    def ext(self, allowed: Any = ()) -> bool:
        """拡張子が許可リストに含まれるかどうか

        Args:
            allowed: 許可する拡張子（文字列またはそのリスト、ドットなし）
        """
        return self._require_artifact().extension() in _as_whitelist(allowed)

    @check("type")
    def type(self, allowed: Any = ()) -> bool:
        """MIMEタイプが許可リストに含まれるかどうか

        Args:
            allowed: 許可するMIMEタイプ（文字列またはそのリスト）
        """
        return self._require_artifact().content_type() in _as_whitelist(allowed)

    # -------------------------------------------------------------------
    # 検証実行
    # -------------------------------------------------------------------

    def execute(self) -> bool:
        """登録されたすべてのルールを登録順に実行する

        最初に失敗したルールで中断し、以降のルールは評価しない。

        Returns:
            すべてのルールが成功した場合は True

        Raises:
            ArtifactMissingError: ルールがあるのにファイルが未設定の場合
            UnknownCheckError: ルールのチェック名が解決できない場合
            ValidationError: チェックが失敗した場合
        """
        # ルールが空の場合はファイルの有無に関わらず成功
        if not self._rules:
            return True

        self._require_artifact()

        for rule in self._rules.values():
            func = self._resolve_check(rule.check_name)
            if not func(*rule.params):
                raise ValidationError(rule.message, rule.check_name)

        return True

    validate = execute


RuleValidator._check_table = _collect_checks(RuleValidator)
