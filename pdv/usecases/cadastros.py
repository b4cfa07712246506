# pdv/usecases/cadastros.py
"""
UC: Cadastros (lado administrativo).

- Insumos: criação, custo da embalagem, entrada de mercadoria, acerto de
  inventário, remoção e importação em lote (XLSX).
- Produtos: criação/edição com receita ou insumo de revenda, faixas de
  preço, remoção.
- Lotes: recebimento de lote com validade e baixa manual do saldo do lote.
- Despesas e perdas: lançamentos usados apenas pelos relatórios.

Obs.:
- Saldo de estoque só muda pelo ledger (`pdv.infra.ledger`), sempre com
  um movimento gravado na mesma transação.
- Produto sem receita e sem insumo de revenda é aceito, mas gera aviso:
  vende sem baixar estoque e com custo zero.
- Lotes não participam do checkout: a venda baixa o saldo dos insumos.
"""

from __future__ import annotations

import math
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from pdv.config import DB_PATH
from pdv.domain.custos import custo_por_unidade_de_medida, sem_consumo
from pdv.domain.models import CATEGORIAS_DESPESA, Insumo, ItemReceita, Lote, Produto
from pdv.infra.db import transaction
from pdv.infra.ledger import ajustar, creditar
from pdv.infra.repositories import (
    DespesaRepo,
    InsumoRepo,
    LoteRepo,
    PerdaRepo,
    ProdutoRepo,
    _as_dict,
)
from pdv.infra.logger import (
    log_transaction, log_database_operation, log_system_event, log_file_operation
)


# -------------------------
# Insumos
# -------------------------

def _validar_insumo(dados: Dict[str, Any]) -> None:
    if not str(dados.get("nome") or "").strip():
        raise ValueError("Insumo sem nome")
    # levanta ValueError para volume <= 0 ou custo negativo
    custo_por_unidade_de_medida(
        float(dados.get("custo_embalagem") or 0.0),
        float(dados.get("volume_embalagem") if dados.get("volume_embalagem") is not None else 1.0),
    )
    if float(dados.get("estoque_minimo") or 0.0) < 0:
        raise ValueError("Estoque mínimo não pode ser negativo")


def criar_insumo(dados: Any, estoque_inicial: float = 0.0, db_path: str = DB_PATH) -> Insumo:
    """Cadastra (ou atualiza) um insumo; o estoque inicial entra como movimento de entrada."""
    d = _as_dict(dados)
    d.setdefault("volume_embalagem", 1.0)
    try:
        _validar_insumo(d)
        if estoque_inicial < 0:
            raise ValueError("Estoque inicial não pode ser negativo")
        repo = InsumoRepo(db_path)
        with transaction(db_path) as conn:
            (insumo_id,) = repo.upsert([d], conn=conn)
            if estoque_inicial > 0:
                creditar(conn, insumo_id, estoque_inicial, tipo="entrada")
        log_database_operation("insumo", "UPSERT", 1, id=insumo_id, nome=d["nome"])
        return repo.get(insumo_id)
    except Exception as e:
        log_transaction("criar_insumo", {"nome": d.get("nome")}, error=str(e))
        raise


def atualizar_custo_insumo(
    insumo_id: str, custo_embalagem: float, volume_embalagem: Optional[float] = None, db_path: str = DB_PATH
) -> Insumo:
    insumo = InsumoRepo(db_path).atualizar_custo(insumo_id, custo_embalagem, volume_embalagem)
    log_database_operation(
        "insumo", "UPDATE_CUSTO", 1, id=insumo_id, custo_unitario=insumo.custo_unitario
    )
    return insumo


def registrar_entrada_insumo(insumo_id: str, quantidade: float, db_path: str = DB_PATH) -> float:
    """Entrada de mercadoria (compra). Retorna o novo saldo."""
    try:
        with transaction(db_path) as conn:
            saldo = creditar(conn, insumo_id, quantidade, tipo="entrada")
    except Exception as e:
        log_transaction("entrada_insumo", {"insumo_id": insumo_id, "quantidade": quantidade}, error=str(e))
        raise
    log_transaction("entrada_insumo", {"insumo_id": insumo_id, "quantidade": quantidade}, result=saldo)
    return saldo


def ajustar_estoque(insumo_id: str, novo_estoque: float, db_path: str = DB_PATH) -> float:
    """Acerto de inventário: grava o saldo contado."""
    try:
        with transaction(db_path) as conn:
            saldo = ajustar(conn, insumo_id, novo_estoque)
    except Exception as e:
        log_transaction("ajuste_estoque", {"insumo_id": insumo_id, "novo_estoque": novo_estoque}, error=str(e))
        raise
    log_transaction("ajuste_estoque", {"insumo_id": insumo_id, "novo_estoque": novo_estoque}, result=saldo)
    return saldo


def remover_insumo(insumo_id: str, db_path: str = DB_PATH) -> bool:
    n = InsumoRepo(db_path).delete(insumo_id)
    log_database_operation("insumo", "DELETE", n, id=insumo_id)
    return n > 0


def importar_insumos(path: str, db_path: str = DB_PATH) -> Dict[str, Any]:
    """Lê um XLSX de insumos e grava cadastro + estoque inicial de cada linha."""
    from pdv.adapters.planilha_loader import load_insumos_from_xlsx

    log_system_event("importar_insumos_start", {"file_path": path})
    try:
        rows = load_insumos_from_xlsx(path)
        log_file_operation("import", path, rows_processed=len(rows))

        erros: List[Dict[str, Any]] = []
        sucessos = 0
        for n, row in enumerate(rows, start=2):  # linha 1 = cabeçalho
            estoque = float(row.pop("estoque_atual", 0.0) or 0.0)
            existente = InsumoRepo(db_path).find_by_nome(row["nome"]) if not row.get("id") else None
            if existente is not None:
                row["id"] = existente.id
            try:
                if existente is not None:
                    _validar_insumo(row)
                    InsumoRepo(db_path).upsert([row])
                    if estoque > 0:
                        registrar_entrada_insumo(existente.id, estoque, db_path=db_path)
                else:
                    criar_insumo(row, estoque_inicial=estoque, db_path=db_path)
                sucessos += 1
            except ValueError as e:
                erros.append({"linha": n, "mensagem": str(e)})

        result = {"tipo": "Insumos", "registros": len(rows), "total": len(rows), "sucessos": sucessos, "erros": erros}
        log_transaction("importar_insumos", {"file": path, "rows_count": len(rows)}, result=result)
        return result
    except Exception as e:
        log_transaction("importar_insumos", {"file": path}, error=str(e))
        log_system_event("importar_insumos_error", {"file_path": path, "error": str(e)}, level="error")
        raise


# -------------------------
# Produtos
# -------------------------

def _quantidade_receita(it: Any) -> Optional[float]:
    if isinstance(it, ItemReceita):
        return it.quantidade
    x = _as_dict(it)
    return x.get("quantidade", x.get("quantity"))


def _validar_produto(d: Dict[str, Any]) -> None:
    if not str(d.get("nome") or "").strip():
        raise ValueError("Produto sem nome")
    if float(d.get("preco") or 0.0) < 0:
        raise ValueError("Preço não pode ser negativo")
    if d.get("quantidade_revenda") is not None and float(d["quantidade_revenda"]) <= 0:
        raise ValueError("Quantidade de revenda deve ser positiva")
    for it in d.get("receita") or []:
        q = _quantidade_receita(it)
        if q is None or float(q) <= 0:
            raise ValueError("Quantidade da receita deve ser positiva")
    _validar_faixas(d.get("faixas_preco") or [])


def _validar_faixas(faixas: Iterable[Any]) -> None:
    vistos = set()
    for f in faixas:
        fd = _as_dict(f)
        qmin = float(fd.get("quantidade_minima", fd.get("minQuantity")))
        preco = float(fd.get("preco_unitario", fd.get("unitPrice")))
        if qmin <= 0:
            raise ValueError("Quantidade mínima da faixa deve ser positiva")
        if preco < 0:
            raise ValueError("Preço da faixa não pode ser negativo")
        if qmin in vistos:
            raise ValueError(f"Faixa duplicada para quantidade {qmin:g}")
        vistos.add(qmin)


def salvar_produto(dados: Any, db_path: str = DB_PATH) -> Produto:
    """Cria ou atualiza um produto (receita e faixas substituídas por completo)."""
    d = _as_dict(dados)
    try:
        _validar_produto(d)
        repo = ProdutoRepo(db_path)
        (produto_id,) = repo.upsert([d])
        produto = repo.get(produto_id)
    except Exception as e:
        log_transaction("salvar_produto", {"nome": d.get("nome")}, error=str(e))
        raise

    if sem_consumo(produto):
        log_system_event(
            "produto_sem_consumo", {"produto_id": produto.id, "nome": produto.nome}, level="warning"
        )
    log_database_operation("produto", "UPSERT", 1, id=produto.id, nome=produto.nome)
    return produto


def definir_faixas(produto_id: str, faixas: Iterable[Any], db_path: str = DB_PATH) -> Produto:
    """Substitui a lista de faixas de preço do produto."""
    faixas = list(faixas)
    _validar_faixas(faixas)
    repo = ProdutoRepo(db_path)
    repo.set_faixas(produto_id, faixas)
    log_database_operation("faixa_preco", "REPLACE", len(faixas), produto_id=produto_id)
    return repo.get(produto_id)


def remover_produto(produto_id: str, db_path: str = DB_PATH) -> bool:
    n = ProdutoRepo(db_path).delete(produto_id)
    log_database_operation("produto", "DELETE", n, id=produto_id)
    return n > 0


# -------------------------
# Lotes
# -------------------------

def registrar_lote(
    produto_id: str,
    quantidade: float,
    validade: Optional[str] = None,
    numero: Optional[str] = None,
    db_path: str = DB_PATH,
) -> Lote:
    """Recebe um lote do produto; saldo inicial e atual começam iguais à quantidade."""
    dados = {"produto_id": produto_id, "quantidade": quantidade, "validade": validade}
    try:
        quantidade = float(quantidade)
        if not (math.isfinite(quantidade) and quantidade > 0):
            raise ValueError("Quantidade do lote deve ser positiva")
        if validade:
            validade = date.fromisoformat(str(validade).strip()).isoformat()
        if ProdutoRepo(db_path).get(produto_id) is None:
            raise KeyError(produto_id)
        repo = LoteRepo(db_path)
        lote_id = repo.insert(
            {"produto_id": produto_id, "estoque_inicial": quantidade, "validade": validade or None, "numero": numero}
        )
    except Exception as e:
        log_transaction("registrar_lote", dados, error=str(e))
        raise
    log_database_operation("lote", "INSERT", 1, id=lote_id, produto_id=produto_id, validade=validade)
    return repo.get(lote_id)


def baixar_lote(lote_id: str, quantidade: float, db_path: str = DB_PATH) -> Lote:
    quantidade = float(quantidade)
    if not (math.isfinite(quantidade) and quantidade > 0):
        raise ValueError("Quantidade a baixar deve ser positiva")
    lote = LoteRepo(db_path).baixar(lote_id, quantidade)
    log_database_operation("lote", "BAIXA", 1, id=lote_id, quantidade=quantidade, saldo=lote.estoque_atual)
    return lote


def lotes_abertos(produto_id: str, db_path: str = DB_PATH) -> List[Lote]:
    """Lotes com saldo do produto, validade mais próxima primeiro."""
    return LoteRepo(db_path).list_by_produto(produto_id)


# -------------------------
# Despesas / Perdas
# -------------------------

def registrar_despesa(
    descricao: str, valor: float, categoria: str = "Outros", data: Optional[str] = None, db_path: str = DB_PATH
) -> str:
    if categoria not in CATEGORIAS_DESPESA:
        raise ValueError(f"Categoria inválida: {categoria!r}. Use uma de: {', '.join(CATEGORIAS_DESPESA)}")
    if valor < 0:
        raise ValueError("Valor da despesa não pode ser negativo")
    despesa_id = DespesaRepo(db_path).insert(
        {"descricao": descricao, "valor": valor, "categoria": categoria, "data": data}
    )
    log_database_operation("despesa", "INSERT", 1, id=despesa_id, valor=valor)
    return despesa_id


def registrar_perda(
    descricao: str, valor: float, quantidade: float = 1.0, data: Optional[str] = None, db_path: str = DB_PATH
) -> str:
    """Lança uma perda (quebra, vencimento) pelo valor de custo; não mexe no estoque."""
    if valor < 0:
        raise ValueError("Valor da perda não pode ser negativo")
    perda_id = PerdaRepo(db_path).insert(
        {"descricao": descricao, "valor": valor, "quantidade": quantidade, "data": data}
    )
    log_database_operation("perda", "INSERT", 1, id=perda_id, valor=valor)
    return perda_id
