# pdv/domain/models.py
"""
Modelos (dataclasses) do domínio.

Observação importante:
- Os repositórios aceitam dicionários ou dataclasses na escrita e devolvem
  dataclasses na leitura.
- Cadastro (Insumo, Produto) é mutável pelo administrador; Venda e
  ItemVenda são valores congelados: uma venda nunca muda depois de gravada.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pdv.domain.errors import CarrinhoInvalido


class UnidadeMedida(str, Enum):
    ML = "ml"
    L = "l"
    G = "g"
    KG = "kg"
    UN = "un"


class FormaPagamento(str, Enum):
    CREDITO = "credit"
    DEBITO = "debit"
    DINHEIRO = "cash"
    PIX = "pix"

    @classmethod
    def parse(cls, valor: Any) -> "FormaPagamento":
        if isinstance(valor, cls):
            return valor
        try:
            return cls(str(valor).strip().lower())
        except ValueError:
            raise CarrinhoInvalido(f"Forma de pagamento inválida: {valor!r}") from None


CATEGORIAS_DESPESA = ("Fixa", "Variável", "Pessoal", "Impostos", "Outros")


@dataclass
class Insumo:
    """Matéria-prima controlada em estoque (na unidade de medida `unidade`)."""
    id: str
    nome: str
    unidade: str = UnidadeMedida.UN.value
    custo_embalagem: float = 0.0
    volume_embalagem: float = 1.0     # tamanho da embalagem em `unidade`
    estoque_atual: float = 0.0
    estoque_minimo: float = 0.0       # apenas informativo (alerta de reposição)
    custo_unitario: float = 0.0       # derivado: custo_embalagem / volume_embalagem
    codigo_barras: Optional[str] = None
    fornecedor: Optional[str] = None


@dataclass(frozen=True)
class ItemReceita:
    insumo_id: str
    quantidade: float  # por unidade de produto vendida


@dataclass(frozen=True)
class FaixaPreco:
    quantidade_minima: float
    preco_unitario: float


@dataclass
class Lote:
    """Lote de um produto com validade (ex.: fardo de cerveja, caixa de água)."""
    id: str
    produto_id: str
    estoque_inicial: float
    estoque_atual: float
    validade: Optional[str] = None    # ISO YYYY-MM-DD
    numero: Optional[str] = None
    data_cadastro: Optional[str] = None


@dataclass
class Produto:
    """Item de venda: composto (receita) ou revenda direta de um insumo."""
    id: str
    nome: str
    categoria: Optional[str] = None
    preco: float = 0.0
    composto: bool = False
    receita: List[ItemReceita] = field(default_factory=list)
    insumo_revenda_id: Optional[str] = None
    quantidade_revenda: Optional[float] = None  # ex.: 8 para fardo, 350 para lata em ml
    faixas_preco: List[FaixaPreco] = field(default_factory=list)
    codigo_barras: Optional[str] = None
    lotes: List[Lote] = field(default_factory=list)  # só os abertos, validade mais próxima primeiro


@dataclass(frozen=True)
class ItemPedido:
    """Linha do carrinho enviada ao checkout."""
    produto_id: str
    produto_nome: str
    quantidade: float
    preco_venda: float


@dataclass(frozen=True)
class PedidoCheckout:
    total: float
    forma_pagamento: FormaPagamento
    itens: Tuple[ItemPedido, ...]
    cliente_id: Optional[str] = None
    cliente_nome: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PedidoCheckout":
        """Converte o payload do caixa (camelCase) em pedido."""
        if not isinstance(data, dict):
            raise CarrinhoInvalido("Pedido deve ser um objeto")
        try:
            itens = tuple(
                ItemPedido(
                    produto_id=str(i["productId"]),
                    produto_nome=str(i.get("productName") or ""),
                    quantidade=float(i["quantity"]),
                    preco_venda=float(i["priceAtSale"]),
                )
                for i in data.get("items") or []
            )
            total = float(data["total"])
        except (KeyError, TypeError, ValueError) as e:
            raise CarrinhoInvalido(f"Pedido malformado: {e}") from None
        return cls(
            total=total,
            forma_pagamento=FormaPagamento.parse(data.get("paymentMethod")),
            itens=itens,
            cliente_id=data.get("customerId") or None,
            cliente_nome=data.get("customerName") or None,
        )


@dataclass(frozen=True)
class ItemVenda:
    """Snapshot de uma linha vendida; nome e custo ficam congelados."""
    produto_id: str
    produto_nome: str
    quantidade: float
    preco_venda: float
    custo_venda: float  # custo total da linha no momento da venda

    def to_dict(self) -> Dict[str, Any]:
        return {
            "productId": self.produto_id,
            "productName": self.produto_nome,
            "quantity": self.quantidade,
            "priceAtSale": self.preco_venda,
            "costAtSale": self.custo_venda,
        }


@dataclass(frozen=True)
class DocumentoFiscal:
    chave_acesso: str   # 44 dígitos
    xml_conteudo: str
    serie: str
    numero: str
    emitido_em: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accessKey": self.chave_acesso,
            "xmlContent": self.xml_conteudo,
            "series": self.serie,
            "number": self.numero,
            "issuedAt": self.emitido_em,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DocumentoFiscal":
        return cls(
            chave_acesso=data["accessKey"],
            xml_conteudo=data["xmlContent"],
            serie=str(data.get("series", "")),
            numero=str(data.get("number", "")),
            emitido_em=data.get("issuedAt", ""),
        )


@dataclass(frozen=True)
class Venda:
    id: str
    data: str
    total: float
    forma_pagamento: FormaPagamento
    itens: Tuple[ItemVenda, ...]
    cliente_id: Optional[str] = None
    cliente_nome: Optional[str] = None
    fiscal: Optional[DocumentoFiscal] = None

    @property
    def custo_total(self) -> float:
        return sum(i.custo_venda for i in self.itens)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "date": self.data,
            "total": self.total,
            "paymentMethod": self.forma_pagamento.value,
            "customerId": self.cliente_id,
            "customerName": self.cliente_nome,
            "items": [i.to_dict() for i in self.itens],
        }
        if self.fiscal is not None:
            out["fiscal"] = self.fiscal.to_dict()
        return out


@dataclass
class Empresa:
    """Dados da empresa usados no cupom e no documento fiscal simulado."""
    razao_social: Optional[str] = None
    cnpj: Optional[str] = None
    ie: Optional[str] = None
    endereco: Optional[str] = None
    regime: Optional[str] = None     # 'Simples Nacional' | 'Lucro Presumido' | 'Lucro Real'
    nome_loja: Optional[str] = None
    chave_pix: Optional[str] = None
    custos_fixos: float = 0.0


@dataclass
class Despesa:
    id: str
    descricao: str
    valor: float
    data: str
    categoria: str = "Outros"


@dataclass
class Perda:
    id: str
    data: str
    descricao: str
    valor: float        # custo perdido
    quantidade: float = 1.0
