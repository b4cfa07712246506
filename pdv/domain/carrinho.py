# pdv/domain/carrinho.py
"""
Montagem do carrinho no caixa.

O carrinho guarda uma linha por produto e recalcula o preço unitário
pela faixa de quantidade a cada alteração. O resultado vira um
``PedidoCheckout`` com o preço de cada linha já resolvido.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from pdv.domain.models import FormaPagamento, ItemPedido, PedidoCheckout, Produto
from pdv.domain.precos import preco_efetivo, total_carrinho, total_linha


@dataclass
class LinhaCarrinho:
    produto: Produto
    quantidade: int

    @property
    def preco_unitario(self) -> float:
        return preco_efetivo(self.produto, self.quantidade)

    @property
    def subtotal(self) -> float:
        return total_linha(self.produto, self.quantidade)


class Carrinho:
    def __init__(self) -> None:
        self._linhas: Dict[str, LinhaCarrinho] = {}

    def adicionar(self, produto: Produto, quantidade: int = 1) -> LinhaCarrinho:
        if quantidade <= 0:
            raise ValueError("quantidade deve ser positiva")
        linha = self._linhas.get(produto.id)
        if linha is None:
            linha = LinhaCarrinho(produto=produto, quantidade=0)
            self._linhas[produto.id] = linha
        linha.quantidade += quantidade
        return linha

    def alterar(self, produto_id: str, delta: int) -> Optional[LinhaCarrinho]:
        """Soma ``delta`` à linha; a linha sai do carrinho ao chegar em zero."""
        linha = self._linhas.get(produto_id)
        if linha is None:
            return None
        linha.quantidade = max(0, linha.quantidade + delta)
        if linha.quantidade == 0:
            del self._linhas[produto_id]
            return None
        return linha

    def remover(self, produto_id: str) -> None:
        self._linhas.pop(produto_id, None)

    def limpar(self) -> None:
        self._linhas.clear()

    @property
    def linhas(self) -> List[LinhaCarrinho]:
        return list(self._linhas.values())

    @property
    def total(self) -> float:
        return total_carrinho((l.produto, l.quantidade) for l in self._linhas.values())

    def __len__(self) -> int:
        return len(self._linhas)

    def para_checkout(
        self,
        forma_pagamento: FormaPagamento | str,
        cliente_id: Optional[str] = None,
        cliente_nome: Optional[str] = None,
    ) -> PedidoCheckout:
        itens = tuple(
            ItemPedido(
                produto_id=l.produto.id,
                produto_nome=l.produto.nome,
                quantidade=l.quantidade,
                preco_venda=l.preco_unitario,
            )
            for l in self._linhas.values()
        )
        return PedidoCheckout(
            total=round(self.total, 2),
            forma_pagamento=FormaPagamento.parse(forma_pagamento),
            itens=itens,
            cliente_id=cliente_id,
            cliente_nome=cliente_nome,
        )
