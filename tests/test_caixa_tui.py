"""
Testes da frente de caixa em modo texto.
"""

import io
from unittest.mock import patch

import pytest
from rich.console import Console

from pdv.adapters.tui import CaixaTUI
from pdv.infra.repositories import InsumoRepo, VendaRepo


@pytest.fixture
def caixa(bar):
    console = Console(file=io.StringIO(), width=120)
    return CaixaTUI(db_path=bar["db_path"], console=console)


def _saida(caixa) -> str:
    return caixa.console.file.getvalue()


class TestCarrinho:
    def test_adicionar_produto_por_busca(self, caixa, bar):
        with patch("pdv.adapters.tui.Prompt.ask", return_value="caip"), \
             patch("pdv.adapters.tui.IntPrompt.ask", return_value=2):
            caixa.adicionar_produto()

        (linha,) = caixa.carrinho.linhas
        assert linha.produto.id == bar["caipirinha"].id
        assert linha.quantidade == 2

    def test_busca_sem_resultado(self, caixa):
        with patch("pdv.adapters.tui.Prompt.ask", return_value="whisky"):
            caixa.adicionar_produto()
        assert len(caixa.carrinho) == 0
        assert "Nenhum produto encontrado" in _saida(caixa)

    def test_mostrar_carrinho_destaca_faixa(self, caixa, bar):
        caixa.carrinho.adicionar(bar["lata"], 10)
        caixa.mostrar_carrinho()
        saida = _saida(caixa)
        assert "(faixa)" in saida
        assert "R$ 50,00" in saida

    def test_alterar_quantidade_ate_zerar(self, caixa, bar):
        caixa.carrinho.adicionar(bar["lata"], 2)
        with patch("pdv.adapters.tui.IntPrompt.ask", side_effect=[1, -2]):
            caixa.alterar_quantidade()
        assert len(caixa.carrinho) == 0


class TestFinalizarVenda:
    def test_venda_aprovada_limpa_carrinho(self, caixa, bar):
        caixa.carrinho.adicionar(bar["caipirinha"], 2)
        with patch("pdv.adapters.tui.Prompt.ask", side_effect=["2", ""]), \
             patch("pdv.adapters.tui.Confirm.ask", return_value=False):
            caixa.finalizar_venda()

        assert len(caixa.carrinho) == 0
        (venda,) = VendaRepo(bar["db_path"]).list()
        assert venda.total == pytest.approx(36.0)
        assert venda.forma_pagamento.value == "pix"
        assert "Venda registrada" in _saida(caixa)

    def test_venda_recusada_mantem_carrinho(self, caixa, bar):
        caixa.carrinho.adicionar(bar["lata"], 100)
        with patch("pdv.adapters.tui.Prompt.ask", side_effect=["1", ""]), \
             patch("pdv.adapters.tui.Confirm.ask", return_value=False):
            caixa.finalizar_venda()

        assert len(caixa.carrinho) == 1
        assert VendaRepo(bar["db_path"]).count() == 0
        assert InsumoRepo(bar["db_path"]).get(bar["cerveja"].id).estoque_atual == 48.0
        saida = _saida(caixa)
        assert "Venda recusada" in saida
        assert "Estoque insuficiente" in saida


def test_estoque_baixo_vazio(caixa):
    caixa.mostrar_estoque_baixo()
    assert "Nenhum insumo abaixo do mínimo" in _saida(caixa)
