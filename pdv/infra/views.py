# pdv/infra/views.py
"""
Criação de views auxiliares para consultas frequentes.

Views criadas:
- vw_estoque_baixo:  insumos no ponto de reposição (estoque_atual <= estoque_minimo).
- vw_vendas_resumo:  uma linha por venda com receita, custo (CMV) e lucro bruto.
- vw_vendas_mensal:  receita e CMV consolidados por ano_mes.

Obs.:
- As views assumem que as migrações V1→V2 já foram aplicadas.
- Um conjunto de índices úteis também é criado, caso não existam.
"""

from __future__ import annotations

from .db import connect


def create_views(db_path: str) -> None:
    with connect(db_path) as c:
        # -----------------------
        # Views (drop + create)
        # -----------------------
        c.executescript(
            """
            ---------------------------
            -- Insumos a repor
            ---------------------------
            DROP VIEW IF EXISTS vw_estoque_baixo;
            CREATE VIEW vw_estoque_baixo AS
            SELECT
                id,
                nome,
                unidade,
                estoque_atual,
                estoque_minimo,
                (estoque_minimo - estoque_atual) AS deficit
            FROM insumo
            WHERE estoque_atual <= estoque_minimo;

            ---------------------------
            -- Resumo por venda
            ---------------------------
            DROP VIEW IF EXISTS vw_vendas_resumo;
            CREATE VIEW vw_vendas_resumo AS
            SELECT
                v.id,
                v.data,
                v.total,
                v.forma_pagamento,
                v.cliente_nome,
                COALESCE(SUM(i.custo_venda), 0.0)           AS custo,
                v.total - COALESCE(SUM(i.custo_venda), 0.0) AS lucro_bruto,
                COUNT(i.id)                                 AS qtd_itens
            FROM venda v
            LEFT JOIN item_venda i ON i.venda_id = v.id
            GROUP BY v.id;

            ---------------------------
            -- Receita e CMV por mês
            ---------------------------
            DROP VIEW IF EXISTS vw_vendas_mensal;
            CREATE VIEW vw_vendas_mensal AS
            SELECT
                substr(data, 1, 7) AS ano_mes,
                SUM(total)         AS receita,
                SUM(custo)         AS cmv,
                COUNT(*)           AS qtd_vendas
            FROM vw_vendas_resumo
            GROUP BY substr(data, 1, 7);
            """
        )

        # --------------------------------
        # Índices úteis (IF NOT EXISTS)
        # --------------------------------
        c.executescript(
            """
            CREATE INDEX IF NOT EXISTS idx_item_receita_produto ON item_receita(produto_id, ordem);
            CREATE INDEX IF NOT EXISTS idx_faixa_preco_produto  ON faixa_preco(produto_id);
            CREATE INDEX IF NOT EXISTS idx_venda_data           ON venda(data);
            CREATE INDEX IF NOT EXISTS idx_item_venda_venda     ON item_venda(venda_id, ordem);
            CREATE INDEX IF NOT EXISTS idx_movimento_insumo     ON movimento_estoque(insumo_id);
            CREATE INDEX IF NOT EXISTS idx_movimento_venda      ON movimento_estoque(venda_id);
            CREATE INDEX IF NOT EXISTS idx_despesa_data         ON despesa(data);
            CREATE INDEX IF NOT EXISTS idx_perda_data           ON perda(data);
            """
        )
