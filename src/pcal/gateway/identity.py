"""身份解析 -- Bearer token 到 user_id

核心层只信任解析后的 user_id；token 的签发与校验属于身份协作方。
"""

from typing import Protocol

from pcal.core.config import get_api_tokens


class IdentityResolver(Protocol):
    """token -> user_id，无法识别时返回 None"""

    def resolve(self, token: str) -> str | None: ...


class StaticTokenIdentity:
    """静态 token 映射（来自 PCAL_API_TOKENS）"""

    def __init__(self, tokens: dict[str, str]) -> None:
        self._tokens = dict(tokens)

    def resolve(self, token: str) -> str | None:
        if not token:
            return None
        return self._tokens.get(token)

    @classmethod
    def from_env(cls) -> "StaticTokenIdentity":
        return cls(get_api_tokens())
