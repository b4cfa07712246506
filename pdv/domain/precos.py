"""
Preço por faixa de quantidade (atacado).

Regra: entre as faixas com ``quantidade_minima <= quantidade`` vale a de
maior ``quantidade_minima``; sem faixa aplicável vale ``produto.preco``.
O preço unitário resolvido vale para a linha inteira, então adicionar uma
unidade pode baratear as unidades já lançadas na mesma linha.
"""

from __future__ import annotations

from typing import Iterable, Tuple

from pdv.domain.models import Produto


def preco_efetivo(produto: Produto, quantidade: float) -> float:
    """Retorna o preço unitário efetivo para ``quantidade`` unidades.

    Args:
        produto: Produto com ``preco`` base e ``faixas_preco`` opcionais.
        quantidade: Quantidade atual da linha do carrinho.

    Returns:
        O ``preco_unitario`` da faixa de maior ``quantidade_minima`` que
        não exceda ``quantidade``; ``produto.preco`` se nenhuma se aplicar.
    """
    melhor = None
    for faixa in produto.faixas_preco or []:
        if faixa.quantidade_minima <= quantidade:
            if melhor is None or faixa.quantidade_minima > melhor.quantidade_minima:
                melhor = faixa
    if melhor is None:
        return float(produto.preco)
    return float(melhor.preco_unitario)


def total_linha(produto: Produto, quantidade: float) -> float:
    return preco_efetivo(produto, quantidade) * quantidade


def total_carrinho(linhas: Iterable[Tuple[Produto, float]]) -> float:
    """Soma das linhas ``(produto, quantidade)`` com preço por faixa."""
    return sum(total_linha(p, q) for p, q in linhas)


def preco_confere(informado: float, esperado: float, tolerancia: float) -> bool:
    return abs(float(informado) - float(esperado)) <= tolerancia
