# pdv/infra/migrations.py
"""
Migrações de schema usando PRAGMA user_version.

V1: tabelas base (cadastro, vendas, despesas, perdas)
V2: histórico de movimentações de estoque, documento fiscal anexado à
    venda e triggers que tornam a venda imutável
V3: lotes de produto com validade
"""

from __future__ import annotations

from typing import List
from .db import connect


SCHEMA_V1: List[str] = [
    # Parâmetros K/V (configurações e dados da empresa)
    """
    CREATE TABLE IF NOT EXISTS params (
        chave TEXT PRIMARY KEY,
        valor TEXT
    );
    """,
    # Insumos (matéria-prima em estoque)
    """
    CREATE TABLE IF NOT EXISTS insumo (
        id TEXT PRIMARY KEY,
        nome TEXT NOT NULL,
        codigo_barras TEXT,
        fornecedor TEXT,
        unidade TEXT NOT NULL DEFAULT 'un', -- 'ml' | 'l' | 'g' | 'kg' | 'un'
        custo_embalagem REAL NOT NULL DEFAULT 0,
        volume_embalagem REAL NOT NULL DEFAULT 1 CHECK (volume_embalagem > 0),
        custo_unitario REAL NOT NULL DEFAULT 0,
        estoque_atual REAL NOT NULL DEFAULT 0 CHECK (estoque_atual >= 0),
        estoque_minimo REAL NOT NULL DEFAULT 0
    );
    """,
    # Produtos (cardápio / catálogo)
    """
    CREATE TABLE IF NOT EXISTS produto (
        id TEXT PRIMARY KEY,
        nome TEXT NOT NULL,
        codigo_barras TEXT,
        categoria TEXT,
        preco REAL NOT NULL DEFAULT 0,
        composto INTEGER NOT NULL DEFAULT 0,
        insumo_revenda_id TEXT,     -- referência fraca: validada no checkout
        quantidade_revenda REAL
    );
    """,
    # Receita de produtos compostos
    """
    CREATE TABLE IF NOT EXISTS item_receita (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        produto_id TEXT NOT NULL,
        ordem INTEGER NOT NULL,
        insumo_id TEXT NOT NULL,    -- referência fraca: validada no checkout
        quantidade REAL NOT NULL,
        FOREIGN KEY (produto_id) REFERENCES produto(id) ON DELETE CASCADE
    );
    """,
    # Faixas de preço por quantidade
    """
    CREATE TABLE IF NOT EXISTS faixa_preco (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        produto_id TEXT NOT NULL,
        quantidade_minima REAL NOT NULL,
        preco_unitario REAL NOT NULL,
        FOREIGN KEY (produto_id) REFERENCES produto(id) ON DELETE CASCADE
    );
    """,
    # Vendas
    """
    CREATE TABLE IF NOT EXISTS venda (
        id TEXT PRIMARY KEY,
        data TEXT NOT NULL,
        total REAL NOT NULL,
        forma_pagamento TEXT NOT NULL,
        cliente_id TEXT,
        cliente_nome TEXT
    );
    """,
    # Itens da venda (snapshot do produto no momento da venda)
    """
    CREATE TABLE IF NOT EXISTS item_venda (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        venda_id TEXT NOT NULL,
        ordem INTEGER NOT NULL,
        produto_id TEXT NOT NULL,   -- sem FK: o produto pode ser removido depois
        produto_nome TEXT NOT NULL,
        quantidade REAL NOT NULL,
        preco_venda REAL NOT NULL,
        custo_venda REAL NOT NULL DEFAULT 0,
        FOREIGN KEY (venda_id) REFERENCES venda(id)
    );
    """,
    # Despesas (DRE)
    """
    CREATE TABLE IF NOT EXISTS despesa (
        id TEXT PRIMARY KEY,
        descricao TEXT NOT NULL,
        valor REAL NOT NULL,
        data TEXT NOT NULL,
        categoria TEXT NOT NULL DEFAULT 'Outros'
    );
    """,
    # Perdas (quebra, vencimento)
    """
    CREATE TABLE IF NOT EXISTS perda (
        id TEXT PRIMARY KEY,
        data TEXT NOT NULL,
        descricao TEXT NOT NULL,
        valor REAL NOT NULL,
        quantidade REAL
    );
    """,
]

SCHEMA_V2: List[str] = [
    # Histórico append-only de movimentações de estoque
    """
    CREATE TABLE IF NOT EXISTS movimento_estoque (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        insumo_id TEXT NOT NULL,
        venda_id TEXT,
        tipo TEXT NOT NULL,         -- 'venda' | 'entrada' | 'ajuste'
        quantidade REAL NOT NULL,   -- negativa nas baixas
        estoque_anterior REAL NOT NULL,
        estoque_posterior REAL NOT NULL,
        data TEXT NOT NULL
    );
    """,
    # Venda imutável: só `fiscal_json` pode ser escrito depois do commit
    """
    CREATE TRIGGER IF NOT EXISTS trg_venda_imutavel
    BEFORE UPDATE OF id, data, total, forma_pagamento, cliente_id, cliente_nome ON venda
    BEGIN
        SELECT RAISE(ABORT, 'venda é imutável');
    END;
    """,
    """
    CREATE TRIGGER IF NOT EXISTS trg_venda_sem_delete
    BEFORE DELETE ON venda
    BEGIN
        SELECT RAISE(ABORT, 'venda é imutável');
    END;
    """,
    """
    CREATE TRIGGER IF NOT EXISTS trg_item_venda_imutavel
    BEFORE UPDATE ON item_venda
    BEGIN
        SELECT RAISE(ABORT, 'item de venda é imutável');
    END;
    """,
    """
    CREATE TRIGGER IF NOT EXISTS trg_item_venda_sem_delete
    BEFORE DELETE ON item_venda
    BEGIN
        SELECT RAISE(ABORT, 'item de venda é imutável');
    END;
    """,
    """
    CREATE TRIGGER IF NOT EXISTS trg_movimento_imutavel
    BEFORE UPDATE ON movimento_estoque
    BEGIN
        SELECT RAISE(ABORT, 'movimento de estoque é imutável');
    END;
    """,
]


SCHEMA_V3: List[str] = [
    # Lotes de produto (entrada com validade)
    """
    CREATE TABLE IF NOT EXISTS lote (
        id TEXT PRIMARY KEY,
        produto_id TEXT NOT NULL,
        numero TEXT,
        validade TEXT,              -- ISO YYYY-MM-DD
        estoque_inicial REAL NOT NULL CHECK (estoque_inicial > 0),
        estoque_atual REAL NOT NULL CHECK (estoque_atual >= 0),
        data_cadastro TEXT NOT NULL,
        FOREIGN KEY (produto_id) REFERENCES produto(id) ON DELETE CASCADE
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_lote_produto_validade ON lote(produto_id, validade);",
]


def _ensure_column(conn, table: str, column: str, ddl: str) -> None:
    """Adiciona coluna se não existir."""
    cur = conn.execute(f"PRAGMA table_info({table});")
    cols = [r[1] for r in cur.fetchall()]  # r[1] é o nome da coluna
    if column not in cols:
        conn.execute(f"ALTER TABLE {table} ADD COLUMN {ddl};")


def _apply_v1(conn) -> None:
    for sql in SCHEMA_V1:
        conn.executescript(sql)


def _apply_v2(conn) -> None:
    # venda: documento fiscal simulado (JSON), anexado depois do commit
    _ensure_column(conn, "venda", "fiscal_json", "fiscal_json TEXT")
    for sql in SCHEMA_V2:
        conn.executescript(sql)


def _apply_v3(conn) -> None:
    for sql in SCHEMA_V3:
        conn.executescript(sql)


def apply_migrations(db_path: str) -> None:
    """Aplica migrações incrementais de acordo com PRAGMA user_version."""
    with connect(db_path) as conn:
        ver = conn.execute("PRAGMA user_version;").fetchone()[0] or 0

        if ver < 1:
            _apply_v1(conn)
            conn.execute("PRAGMA user_version = 1;")
            ver = 1

        if ver < 2:
            _apply_v2(conn)
            conn.execute("PRAGMA user_version = 2;")
            ver = 2

        if ver < 3:
            _apply_v3(conn)
            conn.execute("PRAGMA user_version = 3;")
            ver = 3
