# pdv/usecases/registrar_venda.py
"""
UC: Registrar VENDA (checkout do caixa).

Fluxo, numa única transação:
1) Para cada linha do carrinho, na ordem recebida:
   a. carrega o produto (ProdutoNaoEncontrado se não existir);
   b. confere o preço da linha contra a faixa de preço (se habilitado);
   c. resolve o consumo de insumos (receita ou revenda);
   d. para cada insumo: total = quantidade_por_unidade * quantidade,
      valida o saldo, baixa o estoque e acumula o custo da linha.
2) Grava a venda com os itens e o custo congelado (`custo_venda`).
3) Qualquer falha desfaz tudo: nenhuma baixa e nenhuma venda ficam
   gravadas. O primeiro erro encontrado é o que sobe.

Obs.:
- `custo_venda` é o custo total da linha (custo por unidade x quantidade).
- O total da venda é o informado pelo caixa.
- Nada é repetido automaticamente; o operador corrige o carrinho e reenvia.
- O documento fiscal, quando pedido, é emitido depois do commit e uma
  falha nele não desfaz a venda.
"""

from __future__ import annotations

import math
from typing import Any, Dict, List, Tuple, Union

from pdv.config import DB_PATH, DEFAULTS
from pdv.domain.custos import resolver_consumo
from pdv.domain.errors import (
    CarrinhoInvalido,
    ErroCheckout,
    EstoqueInsuficiente,
    InsumoNaoEncontrado,
    PrecoDivergente,
    ProdutoNaoEncontrado,
)
from pdv.domain.models import ItemPedido, ItemVenda, PedidoCheckout, Venda
from pdv.domain.precos import preco_confere, preco_efetivo
from pdv.infra.db import transaction
from pdv.infra.ledger import reservar_e_baixar
from pdv.infra.repositories import (
    InsumoRepo,
    ParamsRepo,
    ProdutoRepo,
    VendaRepo,
    agora_iso,
    novo_id,
)
from pdv.infra.logger import (
    log_transaction, log_venda, log_database_operation, log_system_event
)
from pdv.usecases.fiscal import emitir_documento_fiscal


def _validar_pedido(pedido: PedidoCheckout) -> None:
    if not pedido.itens:
        raise CarrinhoInvalido("Carrinho vazio")
    for item in pedido.itens:
        if not item.produto_id:
            raise CarrinhoInvalido("Item sem produto")
        if not (math.isfinite(item.quantidade) and item.quantidade > 0):
            raise CarrinhoInvalido(f"Quantidade inválida para {item.produto_nome or item.produto_id}")
        if not math.isfinite(item.preco_venda) or item.preco_venda < 0:
            raise CarrinhoInvalido(f"Preço inválido para {item.produto_nome or item.produto_id}")
    if not math.isfinite(pedido.total) or pedido.total < 0:
        raise CarrinhoInvalido("Total inválido")


def _politica_preco(db_path: str) -> Tuple[bool, float]:
    """Carrega a política de conferência de preço, com fallback para DEFAULTS."""
    params = ParamsRepo(db_path)
    validar = params.get_bool("validar_preco_servidor", DEFAULTS.validar_preco_servidor)
    tolerancia = params.get_float("tolerancia_preco", DEFAULTS.tolerancia_preco)
    return validar, tolerancia


def _processar_linha(
    conn,
    item: ItemPedido,
    venda_id: str,
    produtos: ProdutoRepo,
    insumos: InsumoRepo,
    validar_preco: bool,
    tolerancia: float,
) -> ItemVenda:
    produto = produtos.get(item.produto_id, conn=conn)
    if produto is None:
        raise ProdutoNaoEncontrado(item.produto_id, item.produto_nome or None)

    if validar_preco:
        esperado = preco_efetivo(produto, item.quantidade)
        if not preco_confere(item.preco_venda, esperado, tolerancia):
            raise PrecoDivergente(produto.nome, item.preco_venda, esperado)

    consumo = resolver_consumo(produto)
    if not consumo:
        log_system_event(
            "produto_sem_consumo",
            {"produto_id": produto.id, "nome": produto.nome},
            level="warning",
        )

    custo_linha = 0.0
    for c in consumo:
        total_necessario = c.quantidade_por_unidade * item.quantidade
        insumo = insumos.get(c.insumo_id, conn=conn)
        if insumo is None:
            raise InsumoNaoEncontrado(c.insumo_id, produto.nome)
        if insumo.estoque_atual < total_necessario:
            raise EstoqueInsuficiente(insumo.nome, disponivel=insumo.estoque_atual, necessario=total_necessario)
        reservar_e_baixar(conn, insumo, total_necessario, venda_id=venda_id)
        custo_linha += insumo.custo_unitario * total_necessario

    return ItemVenda(
        produto_id=produto.id,
        produto_nome=item.produto_nome or produto.nome,
        quantidade=item.quantidade,
        preco_venda=item.preco_venda,
        custo_venda=custo_linha,
    )


def _emitir_fiscal_pos_venda(venda: Venda, db_path: str) -> Venda:
    """Documento fiscal é cosmético: a falha é registrada e a venda segue gravada."""
    try:
        return emitir_documento_fiscal(venda.id, db_path=db_path)
    except Exception as e:
        log_venda("fiscal_falhou", venda.id, venda.total, erro=str(e))
        log_system_event("fiscal_error", {"venda_id": venda.id, "error": str(e)}, level="error")
        return venda


def registrar_venda(
    pedido: Union[PedidoCheckout, Dict[str, Any]],
    db_path: str = DB_PATH,
    emitir_fiscal: bool = False,
) -> Venda:
    """Executa o checkout e devolve a venda gravada."""
    if isinstance(pedido, dict):
        pedido = PedidoCheckout.from_dict(pedido)

    resumo = {
        "total": pedido.total,
        "forma_pagamento": pedido.forma_pagamento.value,
        "itens": [(i.produto_id, i.quantidade) for i in pedido.itens],
    }
    log_system_event("checkout_start", resumo)

    try:
        _validar_pedido(pedido)
        validar_preco, tolerancia = _politica_preco(db_path)

        produtos = ProdutoRepo(db_path)
        insumos = InsumoRepo(db_path)
        venda_id = novo_id()

        with transaction(db_path) as conn:
            itens: List[ItemVenda] = [
                _processar_linha(conn, item, venda_id, produtos, insumos, validar_preco, tolerancia)
                for item in pedido.itens
            ]
            venda = Venda(
                id=venda_id,
                data=agora_iso(),
                total=pedido.total,
                forma_pagamento=pedido.forma_pagamento,
                itens=tuple(itens),
                cliente_id=pedido.cliente_id,
                cliente_nome=pedido.cliente_nome,
            )
            VendaRepo.insert(conn, venda)
    except ErroCheckout as e:
        log_venda("rejeitada", None, pedido.total, motivo=str(e))
        log_transaction("checkout", resumo, error=str(e))
        raise
    except Exception as e:
        log_transaction("checkout", resumo, error=str(e))
        log_system_event("checkout_error", {"error": str(e)}, level="error")
        raise

    log_database_operation("venda", "INSERT", 1, venda_id=venda.id, itens=len(venda.itens))
    log_venda("checkout", venda.id, venda.total, custo=venda.custo_total)
    log_transaction("checkout", resumo, result={"venda_id": venda.id, "custo": venda.custo_total})

    if emitir_fiscal:
        venda = _emitir_fiscal_pos_venda(venda, db_path)
    return venda


def obter_venda(venda_id: str, db_path: str = DB_PATH) -> Venda:
    venda = VendaRepo(db_path).get(venda_id)
    if venda is None:
        raise KeyError(venda_id)
    return venda
