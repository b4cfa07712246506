import sqlite3

import pytest

from pdv.domain.errors import (
    CarrinhoInvalido,
    EstoqueInsuficiente,
    InsumoNaoEncontrado,
    PrecoDivergente,
    ProdutoNaoEncontrado,
)
from pdv.domain.models import FormaPagamento
from pdv.infra.db import connect
from pdv.infra.ledger import movimentos_por_insumo, movimentos_por_venda
from pdv.infra.repositories import InsumoRepo, ParamsRepo, VendaRepo
from pdv.usecases.cadastros import (
    atualizar_custo_insumo,
    remover_insumo,
    remover_produto,
    salvar_produto,
)
from pdv.usecases.registrar_venda import obter_venda, registrar_venda


def _estoque(db_path, insumo):
    return InsumoRepo(db_path).get(insumo.id).estoque_atual


def test_dose_de_vodka_baixa_estoque_e_congela_custo(bar, pedido):
    db = bar["db_path"]
    dose = salvar_produto(
        {"nome": "Dose de vodka", "preco": 12.0, "composto": True,
         "receita": [{"insumo_id": bar["vodka"].id, "quantidade": 50}]},
        db_path=db,
    )

    venda = registrar_venda(pedido((dose, 2, 12.0)), db_path=db)

    assert venda.total == pytest.approx(24.0)
    assert _estoque(db, bar["vodka"]) == pytest.approx(900.0)
    (item,) = venda.itens
    assert item.custo_venda == pytest.approx(5.0)
    assert item.produto_nome == "Dose de vodka"


def test_caipirinha_baixa_todos_os_insumos_da_receita(bar, pedido):
    db = bar["db_path"]
    venda = registrar_venda(pedido((bar["caipirinha"], 2, 18.0)), db_path=db)

    assert _estoque(db, bar["vodka"]) == pytest.approx(900.0)
    assert _estoque(db, bar["limao"]) == pytest.approx(98.0)
    assert venda.custo_total == pytest.approx(6.0)
    assert venda.forma_pagamento is FormaPagamento.DINHEIRO


def test_venda_gravada_pode_ser_relida(bar, pedido):
    db = bar["db_path"]
    venda = registrar_venda(
        pedido((bar["caipirinha"], 1, 18.0), (bar["lata"], 3, 6.0), pagamento="pix", customerName="Ana"),
        db_path=db,
    )

    lida = obter_venda(venda.id, db_path=db)
    assert lida == venda
    assert [i.produto_id for i in lida.itens] == [bar["caipirinha"].id, bar["lata"].id]
    assert lida.cliente_nome == "Ana"
    assert VendaRepo(db).count() == 1


def test_obter_venda_inexistente(db_path):
    with pytest.raises(KeyError):
        obter_venda("nao-existe", db_path=db_path)


def test_falha_na_segunda_linha_desfaz_a_primeira(bar, pedido):
    db = bar["db_path"]
    with pytest.raises(EstoqueInsuficiente) as exc:
        registrar_venda(
            pedido((bar["caipirinha"], 2, 18.0), (bar["lata"], 100, 5.0)),
            db_path=db,
        )

    assert exc.value.insumo_nome == "Cerveja lata"
    assert _estoque(db, bar["vodka"]) == pytest.approx(1000.0)
    assert _estoque(db, bar["limao"]) == pytest.approx(100.0)
    assert _estoque(db, bar["cerveja"]) == pytest.approx(48.0)
    assert VendaRepo(db).count() == 0
    # só a entrada do cadastro
    assert [m["tipo"] for m in movimentos_por_insumo(db, bar["vodka"].id)] == ["entrada"]


def test_estoque_exato_zera_saldo(bar, pedido):
    db = bar["db_path"]
    registrar_venda(pedido((bar["lata"], 48, 5.0)), db_path=db)
    assert _estoque(db, bar["cerveja"]) == 0.0

    with pytest.raises(EstoqueInsuficiente):
        registrar_venda(pedido((bar["lata"], 1, 6.0)), db_path=db)


def test_produto_removido(bar, pedido):
    db = bar["db_path"]
    remover_produto(bar["caipirinha"].id, db_path=db)

    with pytest.raises(ProdutoNaoEncontrado) as exc:
        registrar_venda(pedido((bar["caipirinha"], 1, 18.0)), db_path=db)
    assert "Caipirinha" in str(exc.value)
    assert VendaRepo(db).count() == 0


def test_insumo_removido_da_receita(bar, pedido):
    db = bar["db_path"]
    remover_insumo(bar["limao"].id, db_path=db)

    with pytest.raises(InsumoNaoEncontrado) as exc:
        registrar_venda(pedido((bar["caipirinha"], 1, 18.0)), db_path=db)

    assert exc.value.produto_nome == "Caipirinha"
    assert _estoque(db, bar["vodka"]) == pytest.approx(1000.0)
    assert VendaRepo(db).count() == 0


def test_preco_adulterado_e_recusado(bar, pedido):
    db = bar["db_path"]
    with pytest.raises(PrecoDivergente):
        registrar_venda(pedido((bar["caipirinha"], 1, 10.0)), db_path=db)
    assert VendaRepo(db).count() == 0


def test_conferencia_de_preco_desligada(bar, pedido):
    db = bar["db_path"]
    ParamsRepo(db).set_many([("validar_preco_servidor", "0")])

    venda = registrar_venda(pedido((bar["caipirinha"], 1, 10.0)), db_path=db)
    assert venda.itens[0].preco_venda == 10.0


def test_preco_por_faixa_no_checkout(bar, pedido):
    db = bar["db_path"]
    venda = registrar_venda(pedido((bar["lata"], 10, 5.0)), db_path=db)
    assert venda.total == pytest.approx(50.0)
    assert venda.itens[0].custo_venda == pytest.approx(30.0)

    with pytest.raises(PrecoDivergente):
        registrar_venda(pedido((bar["lata"], 9, 5.0)), db_path=db)


@pytest.mark.parametrize(
    "payload",
    [
        {"total": 0, "paymentMethod": "cash", "items": []},
        {"total": 18, "paymentMethod": "cheque", "items": [
            {"productId": "x", "quantity": 1, "priceAtSale": 18}]},
        {"total": 18, "paymentMethod": "cash", "items": [
            {"productId": "x", "quantity": 0, "priceAtSale": 18}]},
        {"total": 18, "paymentMethod": "cash", "items": [{"productId": "x"}]},
        {"total": float("nan"), "paymentMethod": "cash", "items": [
            {"productId": "x", "quantity": 1, "priceAtSale": 18}]},
        {"total": float("inf"), "paymentMethod": "cash", "items": [
            {"productId": "x", "quantity": 1, "priceAtSale": 18}]},
        {"total": 18, "paymentMethod": "cash", "items": [
            {"productId": "x", "quantity": float("inf"), "priceAtSale": 18}]},
        {"total": 18, "paymentMethod": "cash", "items": [
            {"productId": "x", "quantity": float("nan"), "priceAtSale": 18}]},
        {"total": 18, "paymentMethod": "cash", "items": [
            {"productId": "x", "quantity": 1, "priceAtSale": float("nan")}]},
    ],
)
def test_pedido_invalido(db_path, payload):
    with pytest.raises(CarrinhoInvalido):
        registrar_venda(payload, db_path=db_path)
    assert VendaRepo(db_path).count() == 0


def test_custo_congelado_nao_muda_com_novo_custo(bar, pedido):
    db = bar["db_path"]
    venda = registrar_venda(pedido((bar["caipirinha"], 2, 18.0)), db_path=db)

    atualizar_custo_insumo(bar["vodka"].id, 100.0, db_path=db)

    lida = obter_venda(venda.id, db_path=db)
    assert lida.itens[0].custo_venda == pytest.approx(6.0)


def test_nome_do_produto_congelado(bar, pedido):
    db = bar["db_path"]
    venda = registrar_venda(pedido((bar["caipirinha"], 1, 18.0)), db_path=db)

    salvar_produto(
        {"id": bar["caipirinha"].id, "nome": "Caipirinha de limão", "preco": 18.0, "composto": True,
         "receita": [{"insumo_id": bar["vodka"].id, "quantidade": 50}]},
        db_path=db,
    )
    assert obter_venda(venda.id, db_path=db).itens[0].produto_nome == "Caipirinha"


def test_venda_gravada_e_imutavel(bar, pedido):
    db = bar["db_path"]
    venda = registrar_venda(pedido((bar["caipirinha"], 1, 18.0)), db_path=db)

    with pytest.raises(sqlite3.IntegrityError):
        with connect(db) as c:
            c.execute("UPDATE venda SET total = 0 WHERE id = ?", (venda.id,))
    with pytest.raises(sqlite3.IntegrityError):
        with connect(db) as c:
            c.execute("DELETE FROM venda WHERE id = ?", (venda.id,))
    with pytest.raises(sqlite3.IntegrityError):
        with connect(db) as c:
            c.execute("UPDATE item_venda SET custo_venda = 0 WHERE venda_id = ?", (venda.id,))

    assert obter_venda(venda.id, db_path=db).total == pytest.approx(18.0)


def test_movimentos_da_venda(bar, pedido):
    db = bar["db_path"]
    venda = registrar_venda(pedido((bar["caipirinha"], 2, 18.0)), db_path=db)

    movs = movimentos_por_venda(db, venda.id)
    assert [(m["insumo_id"], m["quantidade"]) for m in movs] == [
        (bar["vodka"].id, -100.0),
        (bar["limao"].id, -2.0),
    ]
    assert movs[0]["estoque_anterior"] == 1000.0
    assert movs[0]["estoque_posterior"] == 900.0
    assert all(m["tipo"] == "venda" for m in movs)


def test_produto_sem_consumo_vende_com_custo_zero(db_path, pedido):
    rolha = salvar_produto({"nome": "Taxa de rolha", "preco": 30.0}, db_path=db_path)

    venda = registrar_venda(pedido((rolha, 1, 30.0)), db_path=db_path)
    assert venda.custo_total == 0.0
    assert movimentos_por_venda(db_path, venda.id) == []


def test_preco_nan_recusado_mesmo_sem_conferencia(bar, pedido):
    db = bar["db_path"]
    ParamsRepo(db).set_many([("validar_preco_servidor", "0")])

    with pytest.raises(CarrinhoInvalido):
        registrar_venda(pedido((bar["caipirinha"], 1, float("nan")), total=18.0), db_path=db)
    assert VendaRepo(db).count() == 0
    assert _estoque(db, bar["vodka"]) == pytest.approx(1000.0)


def test_quantidade_infinita_em_produto_sem_consumo(db_path, pedido):
    rolha = salvar_produto({"nome": "Taxa de rolha", "preco": 30.0}, db_path=db_path)

    with pytest.raises(CarrinhoInvalido):
        registrar_venda(pedido((rolha, float("inf"), 30.0), total=30.0), db_path=db_path)
    assert VendaRepo(db_path).count() == 0


def test_linhas_que_dividem_o_mesmo_insumo_somam_a_baixa(bar, pedido):
    db = bar["db_path"]
    dose = salvar_produto(
        {"nome": "Dose de vodka", "preco": 12.0, "composto": True,
         "receita": [{"insumo_id": bar["vodka"].id, "quantidade": 50}]},
        db_path=db,
    )

    venda = registrar_venda(pedido((bar["caipirinha"], 3, 18.0), (dose, 2, 12.0)), db_path=db)

    # 3 x 50 ml + 2 x 50 ml
    assert _estoque(db, bar["vodka"]) == pytest.approx(750.0)
    assert _estoque(db, bar["limao"]) == pytest.approx(97.0)
    baixas = [m for m in movimentos_por_venda(db, venda.id) if m["insumo_id"] == bar["vodka"].id]
    assert sum(m["quantidade"] for m in baixas) == pytest.approx(-250.0)
    assert venda.custo_total == pytest.approx(250 * 0.05 + 3 * 0.5)


def test_linhas_que_dividem_o_mesmo_insumo_nao_passam_do_saldo(bar, pedido):
    db = bar["db_path"]
    dose = salvar_produto(
        {"nome": "Dose de vodka", "preco": 12.0, "composto": True,
         "receita": [{"insumo_id": bar["vodka"].id, "quantidade": 50}]},
        db_path=db,
    )

    # cada linha cabe sozinha (600 ml e 500 ml), juntas passam de 1000 ml
    with pytest.raises(EstoqueInsuficiente) as exc:
        registrar_venda(pedido((bar["caipirinha"], 12, 18.0), (dose, 10, 12.0)), db_path=db)

    assert exc.value.insumo_nome == "Vodka"
    assert _estoque(db, bar["vodka"]) == pytest.approx(1000.0)
    assert VendaRepo(db).count() == 0


@pytest.mark.parametrize("ordem, esperado", [(("lata", "caipirinha"), "Cerveja lata"),
                                              (("caipirinha", "lata"), "Vodka")])
def test_primeiro_erro_segue_a_ordem_do_carrinho(bar, pedido, ordem, esperado):
    db = bar["db_path"]
    linhas = {
        "lata": (bar["lata"], 100, 5.0),         # precisa de 100 latas, há 48
        "caipirinha": (bar["caipirinha"], 30, 18.0),  # precisa de 1500 ml, há 1000
    }

    with pytest.raises(EstoqueInsuficiente) as exc:
        registrar_venda(pedido(*(linhas[n] for n in ordem)), db_path=db)

    assert exc.value.insumo_nome == esperado
    assert _estoque(db, bar["cerveja"]) == pytest.approx(48.0)
    assert _estoque(db, bar["vodka"]) == pytest.approx(1000.0)
