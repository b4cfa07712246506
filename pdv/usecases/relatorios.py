# pdv/usecases/relatorios.py
"""
Relatórios gerenciais:
- DRE mensal (receita, CMV, despesas, perdas, lucro)
- resumo do dashboard (vendas, lucro bruto, insumos a repor)
- insumos com estoque baixo
- listagem de vendas com itens

Os valores de custo vêm do `custo_venda` congelado em cada item vendido,
nunca do cadastro atual.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pdv.config import DB_PATH
from pdv.infra.db import connect
from pdv.infra.migrations import apply_migrations
from pdv.infra.views import create_views
from pdv.infra.repositories import DespesaRepo, PerdaRepo, VendaRepo
from pdv.infra.logger import (
    log_system_event, log_database_operation
)

MESES = ("Jan", "Fev", "Mar", "Abr", "Mai", "Jun", "Jul", "Ago", "Set", "Out", "Nov", "Dez")


# ----------------------
# util
# ----------------------

def _preparar(db_path: str) -> None:
    apply_migrations(db_path)
    create_views(db_path)


def _margem(lucro: float, receita: float) -> float:
    return (lucro / receita * 100.0) if receita > 0 else 0.0


# ----------------------
# 1) DRE gerencial
# ----------------------

def relatorio_dre(ano: int, db_path: str = DB_PATH) -> List[Dict[str, Any]]:
    """
    Uma linha por mês do ano:
        receita             Σ total das vendas
        cmv                 Σ custo_venda dos itens vendidos
        despesas, perdas    lançamentos do mês
        lucro_bruto         receita - cmv
        lucro_liquido       lucro_bruto - despesas - perdas
        custo_operacional   despesas + cmv + perdas
        margem_liquida      lucro_liquido / receita (%)
    """
    log_system_event("relatorio_dre_start", {"ano": ano, "db_path": db_path})
    try:
        _preparar(db_path)
        prefixo = f"{int(ano):04d}-"

        with connect(db_path) as c:
            vendas = {
                r["ano_mes"]: (float(r["receita"] or 0.0), float(r["cmv"] or 0.0))
                for r in c.execute(
                    "SELECT ano_mes, receita, cmv FROM vw_vendas_mensal WHERE ano_mes LIKE ?",
                    (prefixo + "%",),
                ).fetchall()
            }
        log_database_operation("vw_vendas_mensal", "SELECT", len(vendas), ano=ano)

        despesas: Dict[str, float] = {}
        for d in DespesaRepo(db_path).get_all(ano=ano):
            despesas[d.data[:7]] = despesas.get(d.data[:7], 0.0) + d.valor
        perdas: Dict[str, float] = {}
        for p in PerdaRepo(db_path).get_all(ano=ano):
            perdas[p.data[:7]] = perdas.get(p.data[:7], 0.0) + p.valor

        linhas: List[Dict[str, Any]] = []
        for n, nome in enumerate(MESES, start=1):
            ano_mes = f"{prefixo}{n:02d}"
            receita, cmv = vendas.get(ano_mes, (0.0, 0.0))
            desp = despesas.get(ano_mes, 0.0)
            perd = perdas.get(ano_mes, 0.0)
            lucro_bruto = receita - cmv
            lucro_liquido = lucro_bruto - desp - perd
            linhas.append({
                "mes": nome,
                "receita": receita,
                "cmv": cmv,
                "despesas": desp,
                "perdas": perd,
                "lucro_bruto": lucro_bruto,
                "lucro_liquido": lucro_liquido,
                "custo_operacional": desp + cmv + perd,
                "margem_liquida": _margem(lucro_liquido, receita),
            })

        log_system_event("relatorio_dre_ok", {"ano": ano, "meses_com_venda": len(vendas)})
        return linhas
    except Exception as e:
        log_system_event("relatorio_dre_error", {"ano": ano, "error": str(e)}, level="error")
        raise


def totais_dre(linhas: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Soma as linhas mensais; a margem é recalculada sobre os totais."""
    campos = ("receita", "cmv", "despesas", "perdas", "lucro_bruto", "lucro_liquido", "custo_operacional")
    tot: Dict[str, Any] = {"mes": "TOTAL"}
    for k in campos:
        tot[k] = sum(float(l.get(k) or 0.0) for l in linhas)
    tot["margem_liquida"] = _margem(tot["lucro_liquido"], tot["receita"])
    return tot


# ----------------------
# 2) Dashboard
# ----------------------

def resumo_dashboard(db_path: str = DB_PATH) -> Dict[str, Any]:
    log_system_event("resumo_dashboard_start", {"db_path": db_path})
    _preparar(db_path)
    with connect(db_path) as c:
        v = c.execute(
            """SELECT COUNT(*) AS qtd, COALESCE(SUM(total), 0) AS receita,
                      COALESCE(SUM(custo), 0) AS cmv
               FROM vw_vendas_resumo"""
        ).fetchone()
        baixo = c.execute("SELECT COUNT(*) FROM vw_estoque_baixo").fetchone()[0]
        insumos = c.execute("SELECT COUNT(*) FROM insumo").fetchone()[0]
        produtos = c.execute("SELECT COUNT(*) FROM produto").fetchone()[0]

    receita = float(v["receita"])
    cmv = float(v["cmv"])
    return {
        "qtd_vendas": int(v["qtd"]),
        "receita": receita,
        "cmv": cmv,
        "lucro_bruto": receita - cmv,
        "ticket_medio": receita / v["qtd"] if v["qtd"] else 0.0,
        "insumos_estoque_baixo": int(baixo),
        "qtd_insumos": int(insumos),
        "qtd_produtos": int(produtos),
    }


# ----------------------
# 3) Estoque baixo
# ----------------------

def relatorio_estoque_baixo(db_path: str = DB_PATH) -> List[Dict[str, Any]]:
    """Insumos com estoque_atual <= estoque_minimo, maior déficit primeiro."""
    _preparar(db_path)
    with connect(db_path) as c:
        cur = c.execute(
            """SELECT id, nome, unidade, estoque_atual, estoque_minimo, deficit
               FROM vw_estoque_baixo ORDER BY deficit DESC, nome"""
        )
        out = [dict(r) for r in cur.fetchall()]
    log_database_operation("vw_estoque_baixo", "SELECT", len(out))
    return out


# ----------------------
# 4) Vendas
# ----------------------

def relatorio_vendas(
    inicio: Optional[str] = None, fim: Optional[str] = None, db_path: str = DB_PATH
) -> List[Dict[str, Any]]:
    """Vendas do período (ISO, inclusive) no formato `Venda.to_dict()` com custo e lucro."""
    _preparar(db_path)
    vendas = VendaRepo(db_path).list(inicio=inicio, fim=fim)
    log_database_operation("venda", "SELECT", len(vendas), inicio=inicio, fim=fim)
    out: List[Dict[str, Any]] = []
    for v in vendas:
        d = v.to_dict()
        d["cost"] = v.custo_total
        d["profit"] = v.total - v.custo_total
        out.append(d)
    return out
