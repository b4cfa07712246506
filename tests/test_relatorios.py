from datetime import datetime

import pytest

from pdv.usecases.cadastros import registrar_despesa, registrar_perda
from pdv.usecases.registrar_venda import registrar_venda
from pdv.usecases.relatorios import (
    MESES,
    relatorio_dre,
    relatorio_estoque_baixo,
    relatorio_vendas,
    resumo_dashboard,
    totais_dre,
)


@pytest.fixture
def hoje():
    return datetime.now()


def test_dre_vazio(db_path):
    linhas = relatorio_dre(2020, db_path=db_path)
    assert [l["mes"] for l in linhas] == list(MESES)
    assert all(l["receita"] == 0.0 and l["margem_liquida"] == 0.0 for l in linhas)


def test_dre_do_mes(bar, pedido, hoje):
    db = bar["db_path"]
    registrar_venda(pedido((bar["caipirinha"], 2, 18.0)), db_path=db)
    registrar_despesa("Aluguel", 10.0, categoria="Fixa", data=f"{hoje:%Y-%m}-01", db_path=db)
    registrar_perda("Garrafa quebrada", 2.0, data=f"{hoje:%Y-%m}-01", db_path=db)
    registrar_despesa("Ano passado", 999.0, data=f"{hoje.year - 1}-01-01", db_path=db)

    linhas = relatorio_dre(hoje.year, db_path=db)
    mes = linhas[hoje.month - 1]

    assert mes["receita"] == pytest.approx(36.0)
    assert mes["cmv"] == pytest.approx(6.0)
    assert mes["despesas"] == pytest.approx(10.0)
    assert mes["perdas"] == pytest.approx(2.0)
    assert mes["lucro_bruto"] == pytest.approx(30.0)
    assert mes["lucro_liquido"] == pytest.approx(18.0)
    assert mes["custo_operacional"] == pytest.approx(18.0)
    assert mes["margem_liquida"] == pytest.approx(50.0)

    tot = totais_dre(linhas)
    assert tot["mes"] == "TOTAL"
    assert tot["receita"] == pytest.approx(36.0)
    assert tot["despesas"] == pytest.approx(10.0)
    assert tot["margem_liquida"] == pytest.approx(50.0)


def test_dashboard(bar, pedido):
    db = bar["db_path"]
    registrar_venda(pedido((bar["caipirinha"], 2, 18.0)), db_path=db)
    registrar_venda(pedido((bar["lata"], 48, 5.0)), db_path=db)

    resumo = resumo_dashboard(db_path=db)

    assert resumo["qtd_vendas"] == 2
    assert resumo["receita"] == pytest.approx(276.0)
    assert resumo["cmv"] == pytest.approx(6.0 + 144.0)
    assert resumo["lucro_bruto"] == pytest.approx(126.0)
    assert resumo["ticket_medio"] == pytest.approx(138.0)
    assert resumo["insumos_estoque_baixo"] == 1
    assert resumo["qtd_insumos"] == 3
    assert resumo["qtd_produtos"] == 2


def test_estoque_baixo(bar, pedido):
    db = bar["db_path"]
    assert relatorio_estoque_baixo(db_path=db) == []

    registrar_venda(pedido((bar["lata"], 48, 5.0)), db_path=db)

    (linha,) = relatorio_estoque_baixo(db_path=db)
    assert linha["nome"] == "Cerveja lata"
    assert linha["estoque_atual"] == 0.0
    assert linha["deficit"] == 0.0


def test_relatorio_vendas(bar, pedido, hoje):
    db = bar["db_path"]
    venda = registrar_venda(pedido((bar["caipirinha"], 2, 18.0), customerName="Mesa 3"), db_path=db)

    (linha,) = relatorio_vendas(db_path=db)
    assert linha["id"] == venda.id
    assert linha["customerName"] == "Mesa 3"
    assert linha["cost"] == pytest.approx(6.0)
    assert linha["profit"] == pytest.approx(30.0)
    assert linha["items"][0]["costAtSale"] == pytest.approx(6.0)

    assert relatorio_vendas(inicio=f"{hoje.year + 1}-01-01", db_path=db) == []
    assert len(relatorio_vendas(inicio=f"{hoje:%Y-%m-%d}", fim=f"{hoje:%Y-%m-%d}", db_path=db)) == 1
