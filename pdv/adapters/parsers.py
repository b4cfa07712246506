"""
Utilidades de parsing para valores monetários e quantidades.

Este módulo fornece funções para interpretar strings digitadas no caixa
ou encontradas nas planilhas de insumos: valores em reais ("R$ 1.234,56")
e quantidades com unidade ("750 ml - Mililitro", "1 L", "5 UN").
"""

from __future__ import annotations

import math
import re
from typing import Any, Optional, Tuple

from pdv.domain.models import UnidadeMedida

_NUM_RE = re.compile(r"[-+]?\d+(?:[.,]\d+)?")

_UNIDADES = {
    "ml": "ml", "mililitro": "ml", "mililitros": "ml",
    "l": "l", "lt": "l", "litro": "l", "litros": "l",
    "g": "g", "gr": "g", "grama": "g", "gramas": "g",
    "kg": "kg", "quilo": "kg", "quilos": "kg",
    "un": "un", "und": "un", "unid": "un", "unidade": "un", "unidades": "un", "pc": "un",
}


def parse_quantidade_raw(txt: str) -> Tuple[Optional[float], Optional[str], Optional[str]]:
    """Interpreta uma string de quantidade com unidade.

    A string de entrada geralmente segue o padrão "<valor> <unidade> - <descrição>".
    O valor pode usar vírgula ou ponto como separador decimal. A unidade
    é extraída como a segunda palavra antes do hífen (se houver) e é
    retornada em letras maiúsculas. A descrição é o texto após o
    primeiro hífen.

    Exemplos:
        "750 ML - Mililitro" → (750.0, "ML", "Mililitro")
        "2 UN - Unidades"    → (2.0, "UN", "Unidades")
        "1,5 kg"             → (1.5, "KG", None)

    Args:
        txt: Texto a ser interpretado.

    Returns:
        Uma tupla (numero, unidade, descricao). Qualquer valor que não
        possa ser determinado será retornado como None.
    """
    if txt is None:
        return None, None, None
    s = str(txt).strip()
    if not s:
        return None, None, None
    head, desc = (s.split("-", 1) + [""])[:2]
    head = head.strip()
    desc = desc.strip() or None
    parts = head.split()
    num = None
    unidade = None
    if parts:
        m = _NUM_RE.search(parts[0])
        if m:
            num = float(m.group(0).replace(",", "."))
            # "750ml" colado
            resto = parts[0][m.end():].strip()
            if resto:
                unidade = resto.upper()
    if unidade is None and len(parts) >= 2:
        unidade = parts[1].strip().upper() or None
    return num, unidade, desc


def normalizar_unidade(txt: Optional[str]) -> Optional[str]:
    """Mapeia variações ("Litros", "UND", "gr") para `UnidadeMedida`; None se desconhecida."""
    if txt is None:
        return None
    return _UNIDADES.get(str(txt).strip().lower().rstrip("."))


def parse_volume(txt: Any, unidade_padrao: str = UnidadeMedida.UN.value) -> Tuple[Optional[float], str]:
    """Volume da embalagem e sua unidade; números puros assumem `unidade_padrao`."""
    if isinstance(txt, (int, float)) and not isinstance(txt, bool):
        return (None if math.isnan(txt) else float(txt)), unidade_padrao
    num, un, _ = parse_quantidade_raw(txt)
    return num, normalizar_unidade(un) or unidade_padrao


def parse_valor(txt: Any) -> Optional[float]:
    """Converte valores monetários em float.

    Aceita número, "12,50", "R$ 1.234,56", "1,234.56" e "-3". O último
    separador (ponto ou vírgula) é tratado como decimal; os demais são
    separadores de milhar.

    Sem "R$", um único ponto é decimal: "1.234" vale 1.234, não 1234. O
    loader lê as células como texto e uma célula numérica do Excel chega
    com ponto decimal. Com "R$" vale o formato brasileiro: "R$ 1.234" é 1234.

    Returns:
        O valor, ou None para texto vazio.

    Raises:
        ValueError: texto sem número reconhecível.
    """
    if txt is None:
        return None
    if isinstance(txt, (int, float)) and not isinstance(txt, bool):
        return None if math.isnan(txt) else float(txt)
    s = str(txt).strip()
    if not s:
        return None
    moeda = re.search(r"(?i)r\$", s) is not None
    s = re.sub(r"(?i)r\$|\s", "", s)
    negativo = s.startswith("-") or (s.startswith("(") and s.endswith(")"))
    s = s.strip("-+()")
    if not re.fullmatch(r"[\d.,]+", s) or not re.search(r"\d", s):
        raise ValueError(f"Valor inválido: {txt!r}")

    ult = max(s.rfind(","), s.rfind("."))
    if moeda and re.fullmatch(r"\d{1,3}(?:\.\d{3})+", s):
        s = s.replace(".", "")
    elif ult >= 0 and s.count(s[ult]) > 1 and s.count("," if s[ult] == "." else ".") == 0:
        # "1.234.567": só separador de milhar
        s = re.sub(r"[.,]", "", s)
    elif ult >= 0 and (s.count(",") + s.count(".") > 1 or s[ult] == ","):
        inteiro = re.sub(r"[.,]", "", s[:ult])
        s = f"{inteiro}.{s[ult + 1:]}"
    valor = float(s)
    return -valor if negativo else valor


_FATORES = {("l", "ml"): 1000.0, ("ml", "l"): 0.001, ("kg", "g"): 1000.0, ("g", "kg"): 0.001}


def converter_unidade(valor: float, de: str, para: str) -> float:
    """Converte entre ml/l e g/kg. Unidades incompatíveis levantam ValueError."""
    if de == para:
        return valor
    try:
        return valor * _FATORES[(de, para)]
    except KeyError:
        raise ValueError(f"Não é possível converter {de} para {para}") from None
