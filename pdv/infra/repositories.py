# pdv/infra/repositories.py
"""
Repositórios (DAO) para acesso e manipulação de dados no SQLite.

Classes:
- ParamsRepo
- InsumoRepo
- ProdutoRepo
- LoteRepo
- VendaRepo
- MovimentoRepo
- DespesaRepo
- PerdaRepo

Métodos que aceitam ``conn`` participam da transação do chamador; sem
``conn`` abrem a própria conexão (commit ao sair).
"""

from __future__ import annotations

import json
import uuid
from contextlib import contextmanager
from dataclasses import asdict, is_dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from .db import connect
from pdv.config import CHAVES_EMPRESA
from pdv.domain.custos import custo_por_unidade_de_medida
from pdv.domain.models import (
    Despesa,
    DocumentoFiscal,
    Empresa,
    FaixaPreco,
    FormaPagamento,
    Insumo,
    ItemReceita,
    ItemVenda,
    Lote,
    Perda,
    Produto,
    Venda,
)


# -------------------------
# Helpers
# -------------------------

def _as_dict(row: Any) -> Dict[str, Any]:
    if isinstance(row, dict):
        return dict(row)
    if is_dataclass(row):
        return asdict(row)
    raise TypeError("row must be dict or dataclass")


@contextmanager
def _using(db_path: str, conn=None) -> Iterator[Any]:
    if conn is not None:
        yield conn
        return
    with connect(db_path) as c:
        yield c


def novo_id() -> str:
    return uuid.uuid4().hex


def agora_iso() -> str:
    return datetime.now().isoformat(timespec="seconds")


def _faixa(x: Any) -> FaixaPreco:
    if isinstance(x, FaixaPreco):
        return x
    d = _as_dict(x)
    return FaixaPreco(
        quantidade_minima=float(d.get("quantidade_minima", d.get("minQuantity"))),
        preco_unitario=float(d.get("preco_unitario", d.get("unitPrice"))),
    )


def _item_receita(x: Any) -> ItemReceita:
    if isinstance(x, ItemReceita):
        return x
    d = _as_dict(x)
    return ItemReceita(
        insumo_id=str(d.get("insumo_id", d.get("ingredientId"))),
        quantidade=float(d["quantidade"] if "quantidade" in d else d["quantity"]),
    )


# -------------------------
# Params
# -------------------------

class ParamsRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def set_many(self, items: Iterable[Tuple[str, str]]) -> None:
        with connect(self.db_path) as c:
            c.executemany(
                """
                INSERT INTO params (chave, valor)
                VALUES (?, ?)
                ON CONFLICT(chave) DO UPDATE SET valor=excluded.valor
                """,
                list(items),
            )

    def get(self, key: str, default: Optional[str] = None, conn=None) -> Optional[str]:
        with _using(self.db_path, conn) as c:
            row = c.execute("SELECT valor FROM params WHERE chave = ?", (key,)).fetchone()
            return row[0] if row else default

    def get_float(self, key: str, default: float, conn=None) -> float:
        v = self.get(key, None, conn=conn)
        if v is None:
            return default
        try:
            return float(v)
        except ValueError:
            return default

    def get_bool(self, key: str, default: bool, conn=None) -> bool:
        v = self.get(key, None, conn=conn)
        if v is None:
            return default
        s = str(v).strip().lower()
        if s in {"1", "true", "t", "sim", "s", "y", "yes"}:
            return True
        if s in {"0", "false", "f", "nao", "não", "n", "no"}:
            return False
        return default

    def get_empresa(self) -> Empresa:
        with connect(self.db_path) as c:
            placeholders = ",".join("?" for _ in CHAVES_EMPRESA)
            rows = c.execute(
                f"SELECT chave, valor FROM params WHERE chave IN ({placeholders})",
                CHAVES_EMPRESA,
            ).fetchall()
        vals = {r[0]: r[1] for r in rows}
        try:
            custos_fixos = float(vals.pop("custos_fixos", 0) or 0)
        except ValueError:
            custos_fixos = 0.0
        return Empresa(custos_fixos=custos_fixos, **vals)

    def set_empresa(self, empresa: Any) -> None:
        d = _as_dict(empresa)
        items = [(k, str(d[k])) for k in CHAVES_EMPRESA if d.get(k) is not None]
        if items:
            self.set_many(items)


# -------------------------
# Insumo
# -------------------------

_INSUMO_COLS = (
    "id, nome, codigo_barras, fornecedor, unidade, custo_embalagem, "
    "volume_embalagem, custo_unitario, estoque_atual, estoque_minimo"
)


def _row_to_insumo(row) -> Insumo:
    return Insumo(
        id=row["id"],
        nome=row["nome"],
        unidade=row["unidade"],
        custo_embalagem=float(row["custo_embalagem"]),
        volume_embalagem=float(row["volume_embalagem"]),
        estoque_atual=float(row["estoque_atual"]),
        estoque_minimo=float(row["estoque_minimo"] or 0.0),
        custo_unitario=float(row["custo_unitario"]),
        codigo_barras=row["codigo_barras"],
        fornecedor=row["fornecedor"],
    )


class InsumoRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def upsert(self, rows: Iterable[Any], conn=None) -> List[str]:
        """
        Insere ou atualiza o cadastro de insumos.

        ``custo_unitario`` é sempre recalculado a partir da embalagem.
        ``estoque_atual`` não é tocado aqui: saldo só muda pelo ledger.
        """
        rows = [_as_dict(r) for r in rows]
        ids: List[str] = []
        with _using(self.db_path, conn) as c:
            for r in rows:
                payload = {
                    "id": r.get("id") or novo_id(),
                    "nome": r["nome"],
                    "codigo_barras": r.get("codigo_barras"),
                    "fornecedor": r.get("fornecedor"),
                    "unidade": str(r.get("unidade") or "un").lower(),
                    "custo_embalagem": float(r.get("custo_embalagem") or 0.0),
                    "volume_embalagem": float(r.get("volume_embalagem") or 0.0),
                    "estoque_minimo": float(r.get("estoque_minimo") or 0.0),
                }
                payload["custo_unitario"] = custo_por_unidade_de_medida(
                    payload["custo_embalagem"], payload["volume_embalagem"]
                )
                c.execute(
                    """
                    INSERT INTO insumo
                        (id, nome, codigo_barras, fornecedor, unidade, custo_embalagem,
                         volume_embalagem, custo_unitario, estoque_atual, estoque_minimo)
                    VALUES
                        (:id, :nome, :codigo_barras, :fornecedor, :unidade, :custo_embalagem,
                         :volume_embalagem, :custo_unitario, 0, :estoque_minimo)
                    ON CONFLICT(id) DO UPDATE SET
                        nome=excluded.nome,
                        codigo_barras=excluded.codigo_barras,
                        fornecedor=excluded.fornecedor,
                        unidade=excluded.unidade,
                        custo_embalagem=excluded.custo_embalagem,
                        volume_embalagem=excluded.volume_embalagem,
                        custo_unitario=excluded.custo_unitario,
                        estoque_minimo=excluded.estoque_minimo
                    """,
                    payload,
                )
                ids.append(payload["id"])
        return ids

    def atualizar_custo(self, insumo_id: str, custo_embalagem: float, volume_embalagem: Optional[float] = None) -> Insumo:
        """Altera o custo da embalagem (e opcionalmente o volume), recalculando o custo unitário."""
        with connect(self.db_path) as c:
            row = c.execute(f"SELECT {_INSUMO_COLS} FROM insumo WHERE id = ?", (insumo_id,)).fetchone()
            if row is None:
                raise KeyError(insumo_id)
            volume = float(volume_embalagem) if volume_embalagem is not None else float(row["volume_embalagem"])
            custo_un = custo_por_unidade_de_medida(custo_embalagem, volume)
            c.execute(
                """
                UPDATE insumo
                   SET custo_embalagem = ?, volume_embalagem = ?, custo_unitario = ?
                 WHERE id = ?
                """,
                (float(custo_embalagem), volume, custo_un, insumo_id),
            )
        return self.get(insumo_id)

    def get(self, insumo_id: str, conn=None) -> Optional[Insumo]:
        with _using(self.db_path, conn) as c:
            row = c.execute(f"SELECT {_INSUMO_COLS} FROM insumo WHERE id = ?", (insumo_id,)).fetchone()
            return _row_to_insumo(row) if row else None

    def get_all(self) -> List[Insumo]:
        with connect(self.db_path) as c:
            cur = c.execute(f"SELECT {_INSUMO_COLS} FROM insumo ORDER BY nome")
            return [_row_to_insumo(r) for r in cur.fetchall()]

    def map_by_id(self) -> Dict[str, Insumo]:
        return {i.id: i for i in self.get_all()}

    def find_by_nome(self, nome: str) -> Optional[Insumo]:
        with connect(self.db_path) as c:
            row = c.execute(
                f"SELECT {_INSUMO_COLS} FROM insumo WHERE lower(nome) = lower(?)", (nome.strip(),)
            ).fetchone()
            return _row_to_insumo(row) if row else None

    def delete(self, insumo_id: str) -> int:
        with connect(self.db_path) as c:
            return c.execute("DELETE FROM insumo WHERE id = ?", (insumo_id,)).rowcount


# -------------------------
# Produto
# -------------------------

_PRODUTO_COLS = "id, nome, codigo_barras, categoria, preco, composto, insumo_revenda_id, quantidade_revenda"


class ProdutoRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def upsert(self, rows: Iterable[Any]) -> List[str]:
        """Grava produtos substituindo receita e faixas de preço por completo."""
        ids: List[str] = []
        with connect(self.db_path) as c:
            for row in rows:
                r = _as_dict(row)
                pid = r.get("id") or novo_id()
                payload = {
                    "id": pid,
                    "nome": r["nome"],
                    "codigo_barras": r.get("codigo_barras"),
                    "categoria": r.get("categoria"),
                    "preco": float(r.get("preco") or 0.0),
                    "composto": 1 if r.get("composto") else 0,
                    "insumo_revenda_id": r.get("insumo_revenda_id"),
                    "quantidade_revenda": (
                        float(r["quantidade_revenda"]) if r.get("quantidade_revenda") is not None else None
                    ),
                }
                c.execute(
                    """
                    INSERT INTO produto
                        (id, nome, codigo_barras, categoria, preco, composto,
                         insumo_revenda_id, quantidade_revenda)
                    VALUES
                        (:id, :nome, :codigo_barras, :categoria, :preco, :composto,
                         :insumo_revenda_id, :quantidade_revenda)
                    ON CONFLICT(id) DO UPDATE SET
                        nome=excluded.nome,
                        codigo_barras=excluded.codigo_barras,
                        categoria=excluded.categoria,
                        preco=excluded.preco,
                        composto=excluded.composto,
                        insumo_revenda_id=excluded.insumo_revenda_id,
                        quantidade_revenda=excluded.quantidade_revenda
                    """,
                    payload,
                )
                receita = [_item_receita(x) for x in (r.get("receita") or [])]
                c.execute("DELETE FROM item_receita WHERE produto_id = ?", (pid,))
                c.executemany(
                    "INSERT INTO item_receita (produto_id, ordem, insumo_id, quantidade) VALUES (?, ?, ?, ?)",
                    [(pid, n, it.insumo_id, it.quantidade) for n, it in enumerate(receita)],
                )
                self._write_faixas(c, pid, r.get("faixas_preco") or [])
                ids.append(pid)
        return ids

    @staticmethod
    def _write_faixas(c, produto_id: str, faixas: Iterable[Any]) -> None:
        faixas = [_faixa(x) for x in faixas]
        c.execute("DELETE FROM faixa_preco WHERE produto_id = ?", (produto_id,))
        c.executemany(
            "INSERT INTO faixa_preco (produto_id, quantidade_minima, preco_unitario) VALUES (?, ?, ?)",
            [(produto_id, f.quantidade_minima, f.preco_unitario) for f in faixas],
        )

    def set_faixas(self, produto_id: str, faixas: Iterable[Any]) -> None:
        with connect(self.db_path) as c:
            if c.execute("SELECT 1 FROM produto WHERE id = ?", (produto_id,)).fetchone() is None:
                raise KeyError(produto_id)
            self._write_faixas(c, produto_id, faixas)

    def _load(self, c, row) -> Produto:
        pid = row["id"]
        receita = [
            ItemReceita(insumo_id=r["insumo_id"], quantidade=float(r["quantidade"]))
            for r in c.execute(
                "SELECT insumo_id, quantidade FROM item_receita WHERE produto_id = ? ORDER BY ordem",
                (pid,),
            ).fetchall()
        ]
        faixas = [
            FaixaPreco(quantidade_minima=float(r["quantidade_minima"]), preco_unitario=float(r["preco_unitario"]))
            for r in c.execute(
                "SELECT quantidade_minima, preco_unitario FROM faixa_preco WHERE produto_id = ? "
                "ORDER BY quantidade_minima",
                (pid,),
            ).fetchall()
        ]
        return Produto(
            id=pid,
            nome=row["nome"],
            categoria=row["categoria"],
            preco=float(row["preco"]),
            composto=bool(row["composto"]),
            receita=receita,
            insumo_revenda_id=row["insumo_revenda_id"],
            quantidade_revenda=(
                float(row["quantidade_revenda"]) if row["quantidade_revenda"] is not None else None
            ),
            faixas_preco=faixas,
            codigo_barras=row["codigo_barras"],
            lotes=LoteRepo.abertos(c, pid),
        )

    def get(self, produto_id: str, conn=None) -> Optional[Produto]:
        with _using(self.db_path, conn) as c:
            row = c.execute(f"SELECT {_PRODUTO_COLS} FROM produto WHERE id = ?", (produto_id,)).fetchone()
            return self._load(c, row) if row else None

    def get_all(self, q: Optional[str] = None) -> List[Produto]:
        """Lista produtos; ``q`` filtra por nome, código de barras ou categoria."""
        with connect(self.db_path) as c:
            if q:
                like = f"%{q}%"
                cur = c.execute(
                    f"""SELECT {_PRODUTO_COLS} FROM produto
                        WHERE nome LIKE ? OR codigo_barras LIKE ? OR categoria LIKE ?
                        ORDER BY nome""",
                    (like, like, like),
                )
            else:
                cur = c.execute(f"SELECT {_PRODUTO_COLS} FROM produto ORDER BY nome")
            return [self._load(c, row) for row in cur.fetchall()]

    def delete(self, produto_id: str) -> int:
        with connect(self.db_path) as c:
            return c.execute("DELETE FROM produto WHERE id = ?", (produto_id,)).rowcount


# -------------------------
# Lote
# -------------------------

_LOTE_COLS = "id, produto_id, numero, validade, estoque_inicial, estoque_atual, data_cadastro"


def _row_to_lote(row) -> Lote:
    return Lote(
        id=row["id"],
        produto_id=row["produto_id"],
        estoque_inicial=float(row["estoque_inicial"]),
        estoque_atual=float(row["estoque_atual"]),
        validade=row["validade"],
        numero=row["numero"],
        data_cadastro=row["data_cadastro"],
    )


class LoteRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def insert(self, row: Any) -> str:
        """Grava um lote novo; o saldo começa igual à quantidade recebida."""
        r = _as_dict(row)
        payload = {
            "id": r.get("id") or novo_id(),
            "produto_id": r["produto_id"],
            "numero": r.get("numero"),
            "validade": r.get("validade"),
            "estoque_inicial": float(r["estoque_inicial"]),
            "data_cadastro": r.get("data_cadastro") or agora_iso(),
        }
        with connect(self.db_path) as c:
            c.execute(
                """INSERT INTO lote
                       (id, produto_id, numero, validade, estoque_inicial, estoque_atual, data_cadastro)
                   VALUES
                       (:id, :produto_id, :numero, :validade, :estoque_inicial, :estoque_inicial, :data_cadastro)""",
                payload,
            )
        return payload["id"]

    def get(self, lote_id: str) -> Optional[Lote]:
        with connect(self.db_path) as c:
            row = c.execute(f"SELECT {_LOTE_COLS} FROM lote WHERE id = ?", (lote_id,)).fetchone()
            return _row_to_lote(row) if row else None

    @staticmethod
    def abertos(conn, produto_id: str) -> List[Lote]:
        """Lotes com saldo, validade mais próxima primeiro (sem validade por último)."""
        cur = conn.execute(
            f"""SELECT {_LOTE_COLS} FROM lote
                WHERE produto_id = ? AND estoque_atual > 0
                ORDER BY validade IS NULL, validade, data_cadastro""",
            (produto_id,),
        )
        return [_row_to_lote(r) for r in cur.fetchall()]

    def list_by_produto(self, produto_id: str) -> List[Lote]:
        with connect(self.db_path) as c:
            return self.abertos(c, produto_id)

    def baixar(self, lote_id: str, quantidade: float) -> Lote:
        """Retira unidades do lote (venda, quebra, vencimento) sem deixar saldo negativo."""
        with connect(self.db_path) as c:
            cur = c.execute(
                "UPDATE lote SET estoque_atual = estoque_atual - :qtd WHERE id = :id AND estoque_atual >= :qtd",
                {"id": lote_id, "qtd": float(quantidade)},
            )
            if cur.rowcount == 0:
                row = c.execute("SELECT estoque_atual FROM lote WHERE id = ?", (lote_id,)).fetchone()
                if row is None:
                    raise KeyError(lote_id)
                raise ValueError(f"Lote com saldo {float(row[0]):g}, não é possível baixar {float(quantidade):g}")
        return self.get(lote_id)


# -------------------------
# Venda
# -------------------------

class VendaRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    @staticmethod
    def insert(conn, venda: Venda) -> None:
        """Grava a venda e seus itens dentro da transação do checkout."""
        conn.execute(
            """
            INSERT INTO venda (id, data, total, forma_pagamento, cliente_id, cliente_nome, fiscal_json)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                venda.id,
                venda.data,
                float(venda.total),
                venda.forma_pagamento.value,
                venda.cliente_id,
                venda.cliente_nome,
                json.dumps(venda.fiscal.to_dict(), ensure_ascii=False) if venda.fiscal else None,
            ),
        )
        conn.executemany(
            """
            INSERT INTO item_venda
                (venda_id, ordem, produto_id, produto_nome, quantidade, preco_venda, custo_venda)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (venda.id, n, i.produto_id, i.produto_nome, i.quantidade, i.preco_venda, i.custo_venda)
                for n, i in enumerate(venda.itens)
            ],
        )

    @staticmethod
    def _load(c, row) -> Venda:
        itens = tuple(
            ItemVenda(
                produto_id=r["produto_id"],
                produto_nome=r["produto_nome"],
                quantidade=float(r["quantidade"]),
                preco_venda=float(r["preco_venda"]),
                custo_venda=float(r["custo_venda"]),
            )
            for r in c.execute(
                """SELECT produto_id, produto_nome, quantidade, preco_venda, custo_venda
                   FROM item_venda WHERE venda_id = ? ORDER BY ordem""",
                (row["id"],),
            ).fetchall()
        )
        fiscal = DocumentoFiscal.from_dict(json.loads(row["fiscal_json"])) if row["fiscal_json"] else None
        return Venda(
            id=row["id"],
            data=row["data"],
            total=float(row["total"]),
            forma_pagamento=FormaPagamento(row["forma_pagamento"]),
            itens=itens,
            cliente_id=row["cliente_id"],
            cliente_nome=row["cliente_nome"],
            fiscal=fiscal,
        )

    def get(self, venda_id: str, conn=None) -> Optional[Venda]:
        with _using(self.db_path, conn) as c:
            row = c.execute(
                """SELECT id, data, total, forma_pagamento, cliente_id, cliente_nome, fiscal_json
                   FROM venda WHERE id = ?""",
                (venda_id,),
            ).fetchone()
            return self._load(c, row) if row else None

    def list(self, inicio: Optional[str] = None, fim: Optional[str] = None) -> List[Venda]:
        """Vendas da mais recente para a mais antiga; ``inicio``/``fim`` em ISO (inclusive)."""
        sql = """SELECT id, data, total, forma_pagamento, cliente_id, cliente_nome, fiscal_json
                 FROM venda WHERE 1=1"""
        args: List[Any] = []
        if inicio:
            sql += " AND substr(data, 1, 10) >= ?"
            args.append(inicio[:10])
        if fim:
            sql += " AND substr(data, 1, 10) <= ?"
            args.append(fim[:10])
        sql += " ORDER BY data DESC, rowid DESC"
        with connect(self.db_path) as c:
            return [self._load(c, row) for row in c.execute(sql, args).fetchall()]

    def count(self) -> int:
        with connect(self.db_path) as c:
            return int(c.execute("SELECT COUNT(*) FROM venda").fetchone()[0])

    def anexar_fiscal(self, venda_id: str, documento: DocumentoFiscal, conn=None) -> bool:
        """
        Anexa o documento fiscal; totais e itens não são alterados.

        Só grava se a venda ainda não tiver documento. Devolve False quando
        já havia um (o existente é mantido).
        """
        with _using(self.db_path, conn) as c:
            cur = c.execute(
                "UPDATE venda SET fiscal_json = ? WHERE id = ? AND fiscal_json IS NULL",
                (json.dumps(documento.to_dict(), ensure_ascii=False), venda_id),
            )
            if cur.rowcount == 1:
                return True
            if c.execute("SELECT 1 FROM venda WHERE id = ?", (venda_id,)).fetchone() is None:
                raise KeyError(venda_id)
            return False


# -------------------------
# Movimentações de estoque
# -------------------------

class MovimentoRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    @staticmethod
    def insert(conn, row: Dict[str, Any]) -> None:
        payload = {"venda_id": None, "data": agora_iso(), **row}
        conn.execute(
            """
            INSERT INTO movimento_estoque
                (insumo_id, venda_id, tipo, quantidade, estoque_anterior, estoque_posterior, data)
            VALUES
                (:insumo_id, :venda_id, :tipo, :quantidade, :estoque_anterior, :estoque_posterior, :data)
            """,
            payload,
        )

    def _select(self, where: str, arg: str) -> List[Dict[str, Any]]:
        with connect(self.db_path) as c:
            cur = c.execute(
                f"""SELECT id, insumo_id, venda_id, tipo, quantidade, estoque_anterior,
                           estoque_posterior, data
                    FROM movimento_estoque WHERE {where} = ? ORDER BY id""",
                (arg,),
            )
            cols = [d[0] for d in cur.description]
            return [dict(zip(cols, row)) for row in cur.fetchall()]

    def list_by_venda(self, venda_id: str) -> List[Dict[str, Any]]:
        return self._select("venda_id", venda_id)

    def list_by_insumo(self, insumo_id: str) -> List[Dict[str, Any]]:
        return self._select("insumo_id", insumo_id)


# -------------------------
# Despesas / Perdas
# -------------------------

class DespesaRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def insert(self, row: Any) -> str:
        r = _as_dict(row)
        payload = {
            "id": r.get("id") or novo_id(),
            "descricao": r["descricao"],
            "valor": float(r["valor"]),
            "data": r.get("data") or agora_iso(),
            "categoria": r.get("categoria") or "Outros",
        }
        with connect(self.db_path) as c:
            c.execute(
                """INSERT INTO despesa (id, descricao, valor, data, categoria)
                   VALUES (:id, :descricao, :valor, :data, :categoria)""",
                payload,
            )
        return payload["id"]

    def get_all(self, ano: Optional[int] = None) -> List[Despesa]:
        sql = "SELECT id, descricao, valor, data, categoria FROM despesa"
        args: Tuple[Any, ...] = ()
        if ano is not None:
            sql += " WHERE substr(data, 1, 4) = ?"
            args = (f"{int(ano):04d}",)
        sql += " ORDER BY data DESC"
        with connect(self.db_path) as c:
            return [
                Despesa(id=r["id"], descricao=r["descricao"], valor=float(r["valor"]),
                        data=r["data"], categoria=r["categoria"])
                for r in c.execute(sql, args).fetchall()
            ]

    def delete(self, despesa_id: str) -> int:
        with connect(self.db_path) as c:
            return c.execute("DELETE FROM despesa WHERE id = ?", (despesa_id,)).rowcount


class PerdaRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def insert(self, row: Any) -> str:
        r = _as_dict(row)
        payload = {
            "id": r.get("id") or novo_id(),
            "data": r.get("data") or agora_iso(),
            "descricao": r["descricao"],
            "valor": float(r["valor"]),
            "quantidade": float(r["quantidade"]) if r.get("quantidade") is not None else 1.0,
        }
        with connect(self.db_path) as c:
            c.execute(
                """INSERT INTO perda (id, data, descricao, valor, quantidade)
                   VALUES (:id, :data, :descricao, :valor, :quantidade)""",
                payload,
            )
        return payload["id"]

    def get_all(self, ano: Optional[int] = None) -> List[Perda]:
        sql = "SELECT id, data, descricao, valor, quantidade FROM perda"
        args: Tuple[Any, ...] = ()
        if ano is not None:
            sql += " WHERE substr(data, 1, 4) = ?"
            args = (f"{int(ano):04d}",)
        sql += " ORDER BY data DESC"
        with connect(self.db_path) as c:
            return [
                Perda(id=r["id"], data=r["data"], descricao=r["descricao"],
                      valor=float(r["valor"]), quantidade=float(r["quantidade"] or 1.0))
                for r in c.execute(sql, args).fetchall()
            ]
