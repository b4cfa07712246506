# pdv/config.py
"""
Configurações globais e valores padrão do PDV.
"""

import os
from dataclasses import dataclass


# Caminho padrão do banco de dados SQLite
DB_PATH = os.environ.get("PDV_DB_PATH") or os.path.join(os.getcwd(), "pdv.db")


@dataclass
class DefaultConfig:
    """Valores padrão para parâmetros do sistema."""
    validar_preco_servidor: bool = True   # recalcula a faixa de preço no checkout
    tolerancia_preco: float = 0.01        # diferença aceita em R$ por unidade
    timeout_transacao: float = 5.0        # segundos aguardando o lock de escrita
    uf_emitente: str = "35"               # código IBGE da UF (SP)
    serie_fiscal: str = "1"


# Instância global dos valores padrão
DEFAULTS = DefaultConfig()

# Chaves da tabela `params` que guardam os dados da empresa
CHAVES_EMPRESA = (
    "razao_social",
    "cnpj",
    "ie",
    "endereco",
    "regime",
    "nome_loja",
    "chave_pix",
    "custos_fixos",
)
