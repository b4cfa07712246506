"""
Cost model for products sold at the counter.

A product consumes raw ingredients (insumos) in one of two mutually
exclusive modes:

- composite (``composto``): the recipe lists how much of each insumo one
  unit of product consumes (e.g. 50 ml of vodka per caipirinha);
- direct resale: one insumo is deducted ``quantidade_revenda`` times per
  unit sold (e.g. a case of 8 cans consumes 8 units).

All functions are pure: they depend solely on their inputs and do not
modify any external state. The checkout engine uses them as the
authoritative cost source; screens use ``custo_unitario`` as a preview.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Mapping, Optional, Union

from pdv.domain.models import Insumo, Produto


@dataclass(frozen=True)
class Consumo:
    insumo_id: str
    quantidade_por_unidade: float


InsumoLookup = Union[Mapping[str, Insumo], Callable[[str], Optional[Insumo]]]


def custo_por_unidade_de_medida(custo_embalagem: float, volume_embalagem: float) -> float:
    """Derive the cost of one unit of measure from the package data.

    Parameters
    ----------
    custo_embalagem: float
        Price paid for one package.
    volume_embalagem: float
        Package size expressed in the insumo's unit (ml, g, un...).

    Returns
    -------
    float
        ``custo_embalagem / volume_embalagem``.

    Raises
    ------
    ValueError
        If the package volume is not positive or the cost is negative.
    """
    if volume_embalagem is None or float(volume_embalagem) <= 0.0:
        raise ValueError("volume_embalagem deve ser maior que zero")
    if custo_embalagem is None or float(custo_embalagem) < 0.0:
        raise ValueError("custo_embalagem não pode ser negativo")
    return float(custo_embalagem) / float(volume_embalagem)


def resolver_consumo(produto: Produto) -> List[Consumo]:
    """Return the insumo consumption list for one unit of ``produto``.

    Composite products return their recipe verbatim (order preserved) and
    ignore any resale reference. Resale products return a single entry
    and ignore any recipe. When neither mode yields an insumo reference
    the list is empty and the product sells with zero cost.
    """
    if produto.composto:
        return [
            Consumo(item.insumo_id, float(item.quantidade))
            for item in produto.receita
            if item.insumo_id
        ]
    if produto.insumo_revenda_id:
        qtd = produto.quantidade_revenda if produto.quantidade_revenda else 1.0
        return [Consumo(produto.insumo_revenda_id, float(qtd))]
    return []


def sem_consumo(produto: Produto) -> bool:
    """True when the product would be sold without deducting any insumo."""
    return not resolver_consumo(produto)


def _lookup(insumos: InsumoLookup, insumo_id: str) -> Optional[Insumo]:
    if callable(insumos):
        return insumos(insumo_id)
    return insumos.get(insumo_id)


def custo_unitario(produto: Produto, insumos: InsumoLookup) -> float:
    """Cost of goods for one unit of ``produto``.

    Sum of ``insumo.custo_unitario * quantidade_por_unidade`` over the
    consumption list. Missing insumos count as zero; this never raises,
    so it is safe for previews built from partial data.
    """
    total = 0.0
    for consumo in resolver_consumo(produto):
        insumo = _lookup(insumos, consumo.insumo_id)
        if insumo is None:
            continue
        total += float(insumo.custo_unitario or 0.0) * consumo.quantidade_por_unidade
    return total


def margem(produto: Produto, insumos: InsumoLookup) -> float:
    """Gross margin per unit at list price (``preco - custo_unitario``)."""
    return float(produto.preco) - custo_unitario(produto, insumos)
