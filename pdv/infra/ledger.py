# pdv/infra/ledger.py
"""
Saldo de estoque dos insumos.

O saldo (`insumo.estoque_atual`) é o único estado mutável compartilhado
do núcleo. Toda alteração passa por aqui, dentro de uma transação aberta
pelo chamador, e gera uma linha em `movimento_estoque` na mesma
transação.

A baixa é um compare-and-decrement: o UPDATE só casa se o saldo ainda
cobre a quantidade. Com `BEGIN IMMEDIATE` (ver `db.transaction`) o
SQLite já serializa os escritores; a condição no UPDATE garante o
invariante `estoque_atual >= 0` mesmo para um chamador que abra a
transação de outro jeito.
"""

from __future__ import annotations

import math
from typing import Any, Dict, List, Optional

from pdv.domain.errors import EstoqueInsuficiente, InsumoNaoEncontrado
from pdv.domain.models import Insumo
from pdv.infra.logger import log_movimento
from pdv.infra.repositories import MovimentoRepo, agora_iso


def _saldo(conn, insumo_id: str) -> Optional[float]:
    row = conn.execute("SELECT estoque_atual FROM insumo WHERE id = ?", (insumo_id,)).fetchone()
    return float(row[0]) if row else None


def reservar_e_baixar(conn, insumo: Insumo, quantidade: float, venda_id: Optional[str] = None) -> float:
    """
    Verifica e baixa ``quantidade`` do saldo do insumo.

    Deve rodar na mesma transação de todas as outras baixas da venda:
    se qualquer uma falhar o chamador desfaz todas.

    Returns:
        O novo saldo.

    Raises:
        EstoqueInsuficiente: quantidade maior que o saldo atual.
        InsumoNaoEncontrado: insumo removido entre a leitura e a baixa.
    """
    quantidade = float(quantidade)
    if quantidade < 0:
        raise ValueError("quantidade a baixar não pode ser negativa")

    anterior = _saldo(conn, insumo.id)
    if anterior is None:
        raise InsumoNaoEncontrado(insumo.id)
    if quantidade > anterior:
        raise EstoqueInsuficiente(insumo.nome, disponivel=anterior, necessario=quantidade)

    cur = conn.execute(
        """
        UPDATE insumo
           SET estoque_atual = estoque_atual - :qtd
         WHERE id = :id AND estoque_atual >= :qtd
        """,
        {"id": insumo.id, "qtd": quantidade},
    )
    if cur.rowcount != 1:
        raise EstoqueInsuficiente(insumo.nome, disponivel=anterior, necessario=quantidade)

    posterior = _saldo(conn, insumo.id)
    MovimentoRepo.insert(
        conn,
        {
            "insumo_id": insumo.id,
            "venda_id": venda_id,
            "tipo": "venda",
            "quantidade": -quantidade,
            "estoque_anterior": anterior,
            "estoque_posterior": posterior,
            "data": agora_iso(),
        },
    )
    log_movimento("venda", insumo.id, -quantidade, posterior, venda_id=venda_id)
    return posterior


def creditar(conn, insumo_id: str, quantidade: float, tipo: str = "entrada") -> float:
    """Entrada de mercadoria (compra). Retorna o novo saldo."""
    quantidade = float(quantidade)
    if not (math.isfinite(quantidade) and quantidade > 0):
        raise ValueError("quantidade de entrada deve ser positiva")
    anterior = _saldo(conn, insumo_id)
    if anterior is None:
        raise InsumoNaoEncontrado(insumo_id)
    conn.execute(
        "UPDATE insumo SET estoque_atual = estoque_atual + ? WHERE id = ?",
        (quantidade, insumo_id),
    )
    posterior = _saldo(conn, insumo_id)
    MovimentoRepo.insert(
        conn,
        {
            "insumo_id": insumo_id,
            "tipo": tipo,
            "quantidade": quantidade,
            "estoque_anterior": anterior,
            "estoque_posterior": posterior,
        },
    )
    log_movimento(tipo, insumo_id, quantidade, posterior)
    return posterior


def ajustar(conn, insumo_id: str, novo_estoque: float) -> float:
    """Acerto de inventário: grava o saldo contado e a diferença como movimento."""
    novo_estoque = float(novo_estoque)
    if not (math.isfinite(novo_estoque) and novo_estoque >= 0):
        raise ValueError("estoque não pode ser negativo")
    anterior = _saldo(conn, insumo_id)
    if anterior is None:
        raise InsumoNaoEncontrado(insumo_id)
    conn.execute("UPDATE insumo SET estoque_atual = ? WHERE id = ?", (novo_estoque, insumo_id))
    MovimentoRepo.insert(
        conn,
        {
            "insumo_id": insumo_id,
            "tipo": "ajuste",
            "quantidade": novo_estoque - anterior,
            "estoque_anterior": anterior,
            "estoque_posterior": novo_estoque,
        },
    )
    log_movimento("ajuste", insumo_id, novo_estoque - anterior, novo_estoque)
    return novo_estoque


def movimentos_por_venda(db_path: str, venda_id: str) -> List[Dict[str, Any]]:
    return MovimentoRepo(db_path).list_by_venda(venda_id)


def movimentos_por_insumo(db_path: str, insumo_id: str) -> List[Dict[str, Any]]:
    return MovimentoRepo(db_path).list_by_insumo(insumo_id)
