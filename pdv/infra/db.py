# pdv/infra/db.py
"""
Utilidades de conexão SQLite.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from typing import Iterator

from pdv.config import DEFAULTS


@contextmanager
def connect(db_path: str) -> Iterator[sqlite3.Connection]:
    """
    Context manager para abrir conexão SQLite com:
    - foreign_keys ON
    - row_factory = sqlite3.Row
    - commit ao sair (rollback em caso de exceção)
    """
    conn = sqlite3.connect(db_path, timeout=DEFAULTS.timeout_transacao)
    try:
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON;")
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


@contextmanager
def transaction(db_path: str, timeout: float | None = None) -> Iterator[sqlite3.Connection]:
    """
    Unidade de trabalho atômica para operações que leem e escrevem estoque.

    Abre a transação com ``BEGIN IMMEDIATE``: o lock de escrita é obtido
    antes da primeira leitura, então dois checkouts concorrentes nunca
    enxergam o mesmo saldo. O segundo aguarda até ``timeout`` segundos.
    Tudo é desfeito se qualquer exceção escapar do bloco.
    """
    conn = sqlite3.connect(
        db_path,
        timeout=DEFAULTS.timeout_transacao if timeout is None else timeout,
        isolation_level=None,
    )
    try:
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.execute("BEGIN IMMEDIATE;")
        yield conn
        conn.execute("COMMIT;")
    except Exception:
        if conn.in_transaction:
            conn.execute("ROLLBACK;")
        raise
    finally:
        conn.close()
