# pdv/domain/errors.py
"""
Erros de negócio do checkout.

Todos derivam de ``ErroCheckout``: a camada de apresentação mostra a
mensagem ao operador e mantém o carrinho intacto para correção.
Falhas do banco (``sqlite3.Error``) não são convertidas e continuam
sendo tratadas como erro inesperado.
"""

from __future__ import annotations


class ErroCheckout(Exception):
    """Rejeição de um checkout; nenhuma venda e nenhuma baixa foram gravadas."""


class CarrinhoInvalido(ErroCheckout):
    """Pedido malformado (sem itens, quantidade não positiva, pagamento inválido)."""


class ProdutoNaoEncontrado(ErroCheckout):
    def __init__(self, produto_id: str, produto_nome: str | None = None):
        self.produto_id = produto_id
        self.produto_nome = produto_nome
        super().__init__(f"Produto {produto_nome or produto_id} não encontrado")


class InsumoNaoEncontrado(ErroCheckout):
    def __init__(self, insumo_id: str, produto_nome: str | None = None):
        self.insumo_id = insumo_id
        self.produto_nome = produto_nome
        msg = "Ingrediente não encontrado"
        if produto_nome:
            msg += f" (produto {produto_nome})"
        super().__init__(msg)


class EstoqueInsuficiente(ErroCheckout):
    def __init__(self, insumo_nome: str, disponivel: float | None = None, necessario: float | None = None):
        self.insumo_nome = insumo_nome
        self.disponivel = disponivel
        self.necessario = necessario
        super().__init__(f"Estoque insuficiente: {insumo_nome}")


class PrecoDivergente(ErroCheckout):
    def __init__(self, produto_nome: str, informado: float, esperado: float):
        self.produto_nome = produto_nome
        self.informado = informado
        self.esperado = esperado
        super().__init__(
            f"Preço divergente para {produto_nome}: informado {informado:.2f}, esperado {esperado:.2f}"
        )
