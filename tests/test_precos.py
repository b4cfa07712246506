import pytest

from pdv.domain.carrinho import Carrinho
from pdv.domain.errors import CarrinhoInvalido
from pdv.domain.models import FaixaPreco, FormaPagamento, Produto
from pdv.domain.precos import preco_confere, preco_efetivo, total_carrinho, total_linha


def _cerveja():
    return Produto(
        id="cerveja", nome="Cerveja", preco=10.0,
        faixas_preco=[FaixaPreco(10, 8.0), FaixaPreco(24, 7.0)],
    )


@pytest.mark.parametrize(
    "quantidade,esperado",
    [(1, 10.0), (9, 10.0), (10, 8.0), (23, 8.0), (24, 7.0), (100, 7.0)],
)
def test_preco_efetivo_por_faixa(quantidade, esperado):
    assert preco_efetivo(_cerveja(), quantidade) == esperado


def test_preco_efetivo_independe_da_ordem_das_faixas():
    p = _cerveja()
    p.faixas_preco = list(reversed(p.faixas_preco))
    assert preco_efetivo(p, 30) == 7.0


def test_sem_faixas_usa_preco_base():
    p = Produto(id="x", nome="Água", preco=4.0)
    assert preco_efetivo(p, 1000) == 4.0


def test_totais():
    p = _cerveja()
    assert total_linha(p, 10) == pytest.approx(80.0)
    assert total_carrinho([(p, 9), (p, 10)]) == pytest.approx(170.0)


def test_preco_confere_com_tolerancia():
    assert preco_confere(8.0, 8.0, 0.01)
    assert preco_confere(8.005, 8.0, 0.01)
    assert not preco_confere(7.5, 8.0, 0.01)


def test_carrinho_reprecifica_a_linha_inteira():
    c = Carrinho()
    p = _cerveja()
    linha = c.adicionar(p, 9)
    assert linha.preco_unitario == 10.0
    assert c.total == pytest.approx(90.0)

    c.adicionar(p)  # 10 unidades: todas passam a 8,00
    assert linha.quantidade == 10
    assert linha.preco_unitario == 8.0
    assert c.total == pytest.approx(80.0)

    c.alterar(p.id, -1)  # volta para 9 unidades a 10,00
    assert c.linhas[0].preco_unitario == 10.0
    assert c.total == pytest.approx(90.0)


def test_carrinho_remove_linha_ao_zerar():
    c = Carrinho()
    p = _cerveja()
    c.adicionar(p, 2)
    assert c.alterar(p.id, -2) is None
    assert len(c) == 0


def test_carrinho_rejeita_quantidade_nao_positiva():
    with pytest.raises(ValueError):
        Carrinho().adicionar(_cerveja(), 0)


def test_carrinho_para_checkout():
    c = Carrinho()
    p = _cerveja()
    c.adicionar(p, 12)
    pedido = c.para_checkout("pix", cliente_nome="Mesa 4")
    assert pedido.forma_pagamento is FormaPagamento.PIX
    assert pedido.total == pytest.approx(96.0)
    (item,) = pedido.itens
    assert (item.produto_id, item.quantidade, item.preco_venda) == ("cerveja", 12, 8.0)
    assert pedido.cliente_nome == "Mesa 4"


def test_carrinho_forma_pagamento_invalida():
    c = Carrinho()
    c.adicionar(_cerveja())
    with pytest.raises(CarrinhoInvalido):
        c.para_checkout("cheque")
