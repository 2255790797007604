"""ロールアウト率判定のためのユーザーバケット割り当て"""

from __future__ import annotations

import hashlib

BUCKETS = 100


def bucket(user_id: str, flag_name: str) -> int:
    """``(user_id, flag_name)`` を 0-99 の固定バケットに割り当てる。

    フラグ名をハッシュに含めるため、同じユーザーでもフラグごとに
    独立したバケットになる。
    """
    digest = hashlib.sha256(f"{user_id}:{flag_name}".encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big") % BUCKETS


def polynomial_bucket(user_id: str, flag_name: str) -> int:
    """旧 Web クライアントの ``hash * 31 + charCode``（符号付き 32bit）によるバケット。

    文字は UTF-16 コードユニット単位で扱う（BMP 外の文字はサロゲートペアの
    2 ユニット）。旧クライアントで割り当て済みのコホート確認用で、
    評価には bucket() を使う。
    """
    data = f"{user_id}:{flag_name}".encode("utf-16-le")
    h = 0
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        h = (h * 31 + unit) & 0xFFFFFFFF
    if h & 0x80000000:
        h -= 1 << 32
    return abs(h) % BUCKETS
