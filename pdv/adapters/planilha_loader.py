# pdv/adapters/planilha_loader.py
"""
Loader de planilha (XLSX) de INSUMOS.

Esta função:
- lê a planilha usando pandas;
- normaliza cabeçalhos (acentos, variações, sinônimos);
- converte valores em reais e volumes com unidade;
- retorna uma lista de dicionários com as chaves esperadas por `InsumoRepo`.

Observações:
- Linhas sem nome são ignoradas.
- `estoque_atual` é devolvido à parte para virar movimento de entrada;
  o cadastro em si nunca grava saldo.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional
import pandas as pd
import re

from pdv.adapters.parsers import converter_unidade, normalizar_unidade, parse_valor, parse_volume


# ---------------------------
# utilitários de normalização
# ---------------------------

def _slug(s: str) -> str:
    """Normaliza cabeçalhos: minúsculas, sem acentos, sem não-alfanumérico."""
    if s is None:
        return ""
    s = str(s).strip().lower()
    acentos = dict(zip("áàâãäéèêëíìîïóòôõöúùûüç", "aaaaaeeeeiiiiooooouuuuc"))
    s = "".join(acentos.get(ch, ch) for ch in s)
    s = re.sub(r"[^a-z0-9]+", " ", s)
    s = re.sub(r"\s+", " ", s).strip()
    return s


def _safe_get(row, key):
    """Lê um valor da linha do pandas tratando NA como None."""
    val = row.get(key)
    if val is None or pd.isna(val):
        return None
    return val


def _to_str(val: Any) -> Optional[str]:
    if val is None:
        return None
    s = str(val).strip()
    return s or None


def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Renomeia colunas com base em sinônimos/variações."""
    aliases = {
        "id": "id",
        "codigo": "id",

        "nome": "nome",
        "insumo": "nome",
        "ingrediente": "nome",
        "produto": "nome",
        "descricao": "nome",

        "unidade": "unidade",
        "un": "unidade",
        "unidade de medida": "unidade",

        "custo": "custo_embalagem",
        "custo embalagem": "custo_embalagem",
        "custo da embalagem": "custo_embalagem",
        "preco de compra": "custo_embalagem",
        "valor": "custo_embalagem",

        "volume": "volume_embalagem",
        "volume embalagem": "volume_embalagem",
        "tamanho embalagem": "volume_embalagem",
        "conteudo": "volume_embalagem",

        "estoque": "estoque_atual",
        "estoque atual": "estoque_atual",
        "saldo": "estoque_atual",

        "estoque minimo": "estoque_minimo",
        "minimo": "estoque_minimo",
        "ponto de reposicao": "estoque_minimo",

        "codigo de barras": "codigo_barras",
        "ean": "codigo_barras",
        "barcode": "codigo_barras",

        "fornecedor": "fornecedor",
    }

    new_cols = {}
    for col in df.columns:
        key = _slug(col)
        new_cols[col] = aliases.get(key, key)  # se não houver alias, mantém slug
    return df.rename(columns=new_cols)


# ---------------------------
# loader público (XLSX)
# ---------------------------

def load_insumos_from_xlsx(path: str) -> List[Dict[str, Any]]:
    """Lê XLSX de INSUMOS e retorna registros para `InsumoRepo.upsert`.

    Campos de saída (chaves do dict por linha):
      - id: str | None
      - nome: str
      - unidade: ml | l | g | kg | un
      - custo_embalagem: float
      - volume_embalagem: float (na unidade acima)
      - estoque_atual: float (estoque inicial, vira entrada)
      - estoque_minimo: float
      - codigo_barras: str | None
      - fornecedor: str | None
    """
    df = pd.read_excel(path, dtype="string")
    df = _normalize_columns(df)
    out: List[Dict[str, Any]] = []
    for _, row in df.iterrows():
        nome = _to_str(_safe_get(row, "nome"))
        if not nome:
            continue
        unidade = normalizar_unidade(_safe_get(row, "unidade"))
        volume, un_volume = parse_volume(_safe_get(row, "volume_embalagem"), unidade or "un")
        if volume is not None and unidade and un_volume != unidade:
            volume = converter_unidade(volume, un_volume, unidade)
        rec = {
            "id": _to_str(_safe_get(row, "id")),
            "nome": nome,
            "unidade": unidade or un_volume,
            "custo_embalagem": parse_valor(_safe_get(row, "custo_embalagem")) or 0.0,
            "volume_embalagem": volume if volume is not None else 1.0,
            "estoque_atual": parse_valor(_safe_get(row, "estoque_atual")) or 0.0,
            "estoque_minimo": parse_valor(_safe_get(row, "estoque_minimo")) or 0.0,
            "codigo_barras": _to_str(_safe_get(row, "codigo_barras")),
            "fornecedor": _to_str(_safe_get(row, "fornecedor")),
        }
        out.append(rec)
    return out
