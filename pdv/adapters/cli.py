# pdv/adapters/cli.py
"""
CLI do PDV (Typer).

Comandos principais:
- migrate                         -> aplica migrações e cria views
- params set/get/show             -> parâmetros do caixa (conferência de preço, fiscal)
- empresa set/show                -> dados da empresa/loja
- insumo add/list/custo/entrada/ajuste/import
- produto add/list/show/preco/lote/baixa-lote
- venda registrar/list/show       -> checkout a partir de JSON e consultas
- fiscal emitir <id>              -> documento fiscal simulado (XML/PDF)
- despesa add/list, perda add/list
- rel dre/dashboard/estoque-baixo -> relatórios
- logs [tipo]                     -> últimas linhas dos arquivos de log
- caixa                           -> frente de caixa interativa (TUI)
"""

from __future__ import annotations

import json
import sqlite3
import sys
from contextlib import contextmanager
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.panel import Panel
from rich import box

from pdv.config import CHAVES_EMPRESA, DB_PATH, DEFAULTS
from pdv.domain.custos import custo_unitario
from pdv.domain.errors import ErroCheckout
from pdv.domain.models import CATEGORIAS_DESPESA, FaixaPreco, ItemReceita, Venda
from pdv.infra.migrations import apply_migrations
from pdv.infra.views import create_views
from pdv.infra.repositories import InsumoRepo, ParamsRepo, ProdutoRepo, DespesaRepo, PerdaRepo
from pdv.infra.logger import get_log_summary
from pdv.usecases.cadastros import (
    ajustar_estoque,
    atualizar_custo_insumo,
    criar_insumo,
    baixar_lote,
    definir_faixas,
    importar_insumos,
    registrar_despesa,
    registrar_entrada_insumo,
    registrar_lote,
    registrar_perda,
    salvar_produto,
)
from pdv.usecases.fiscal import emitir_documento_fiscal, gerar_pdf
from pdv.usecases.registrar_venda import obter_venda, registrar_venda
from pdv.usecases.relatorios import (
    relatorio_dre,
    relatorio_estoque_baixo,
    relatorio_vendas,
    resumo_dashboard,
    totais_dre,
)


app = typer.Typer(help="PDV: caixa e controle de insumos")
console = Console()


# -----------------------
# util
# -----------------------

def _print_json(obj) -> None:
    typer.echo(json.dumps(obj, ensure_ascii=False, indent=2))


def _fmt(val: Any) -> str:
    if isinstance(val, bool):
        return "sim" if val else "não"
    if isinstance(val, (int, float)):
        return f"{val:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    if val is None:
        return ""
    return escape(str(val))


@contextmanager
def _erros_do_operador():
    """Erros esperados viram mensagem em vermelho e código de saída 1."""
    try:
        yield
    except (ErroCheckout, ValueError) as e:
        console.print(f"[bold red]Erro:[/] {escape(str(e))}")
        raise typer.Exit(code=1)
    except KeyError as e:
        console.print(f"[bold red]Não encontrado:[/] {escape(str(e.args[0]) if e.args else '')}")
        raise typer.Exit(code=1)
    except sqlite3.Error as e:
        console.print(f"[bold red]Erro de banco:[/] {escape(str(e))} (já rodou `pdv migrate`?)")
        raise typer.Exit(code=1)


def _display_table(data: Dict[str, Any] | List[Dict[str, Any]], title: str = "Resultado") -> None:
    """Exibe os dados em tabelas formatadas usando Rich."""
    if not data:
        console.print(Panel("Nenhum dado encontrado", title=title, border_style="yellow"))
        return

    # Lista de itens - formato dos relatórios
    if isinstance(data, list) and isinstance(data[0], dict):
        table = Table(title=title, box=box.ROUNDED)
        columns = list(data[0].keys())
        for column in columns:
            valores = [row.get(column) for row in data]
            numerica = all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in valores if v is not None)
            table.add_column(column, justify="right" if numerica else "left")
        for row in data:
            table.add_row(*[_fmt(row.get(col)) for col in columns])
        console.print(table)
        return

    # Operações em lote
    if isinstance(data, dict) and "registros" in data and "total" in data:
        titulo = f"{data['tipo']} em Lote" if "tipo" in data else "Registros em Lote"
        panel_content = [
            f"Total de registros: {data['total']}",
            f"Processados com sucesso: {data.get('sucessos', 0)}",
        ]
        if data.get("erros"):
            panel_content.append(f"Erros: {len(data['erros'])}")
        console.print(Panel("\n".join(panel_content), title=titulo))

        if data.get("erros"):
            erro_table = Table(title="Erros Encontrados")
            erro_table.add_column("Linha")
            erro_table.add_column("Erro")
            for erro in data["erros"]:
                erro_table.add_row(str(erro.get("linha", "?")), escape(erro.get("mensagem", "Erro desconhecido")))
            console.print(erro_table)
        return

    # Parâmetros
    if isinstance(data, dict) and "_defaults" in data:
        params_table = Table(title=title)
        params_table.add_column("Parâmetro")
        params_table.add_column("Valor Atual")
        params_table.add_column("Valor Padrão")
        for param, padrao in data["_defaults"].items():
            params_table.add_row(param, str(data.get(param)), str(padrao))
        console.print(params_table)
        console.print(f"[dim]Banco de dados: {escape(str(data.get('_db', 'N/A')))}[/dim]")
        return

    # Registro único: campo / valor
    if isinstance(data, dict):
        table = Table(title=title, box=box.ROUNDED)
        table.add_column("Campo")
        table.add_column("Valor")
        for chave, valor in data.items():
            table.add_row(chave, _fmt(valor))
        console.print(table)
        return

    _print_json(data)


def _display_venda(venda: Venda) -> None:
    cab = {
        "id": venda.id,
        "data": venda.data,
        "forma_pagamento": venda.forma_pagamento.value,
        "cliente": venda.cliente_nome,
        "total": venda.total,
        "custo": venda.custo_total,
        "lucro_bruto": venda.total - venda.custo_total,
    }
    if venda.fiscal:
        cab["chave_acesso"] = venda.fiscal.chave_acesso
    _display_table(cab, title="Venda")
    _display_table(
        [
            {"produto": i.produto_nome, "qtd": i.quantidade, "preco": i.preco_venda,
             "subtotal": i.preco_venda * i.quantidade, "custo": i.custo_venda}
            for i in venda.itens
        ],
        title="Itens",
    )


def _parse_pares(txt: Optional[str], campo: str) -> List[tuple[str, float]]:
    """'a:1,b:2.5' -> [('a', 1.0), ('b', 2.5)]"""
    out: List[tuple[str, float]] = []
    if not txt:
        return out
    for parte in txt.split(","):
        parte = parte.strip()
        if not parte:
            continue
        chave, sep, valor = parte.rpartition(":")
        if not sep or not chave:
            raise typer.BadParameter(f"use o formato chave:valor ({parte!r})", param_hint=campo)
        out.append((chave.strip(), float(valor.replace(",", "."))))
    return out


def _faixas(specs: Optional[List[str]]) -> List[FaixaPreco]:
    pares = _parse_pares(",".join(specs or []), "--faixa")
    return [FaixaPreco(quantidade_minima=float(q), preco_unitario=p) for q, p in pares]


# -----------------------
# comandos de infra
# -----------------------

@app.command("migrate")
def cmd_migrate(db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")):
    """Aplica migrações e recria as views auxiliares."""
    apply_migrations(db_path)
    create_views(db_path)
    typer.echo(f">> Migrações aplicadas e views criadas em: {db_path}")


params_app = typer.Typer(help="Gerenciar parâmetros do caixa.")
app.add_typer(params_app, name="params")


@params_app.command("set")
def cmd_params_set(
    validar_preco_servidor: Optional[bool] = typer.Option(
        None, "--validar-preco/--nao-validar-preco", help="Conferir o preço de cada linha no checkout"
    ),
    tolerancia_preco: Optional[float] = typer.Option(None, help="Diferença aceita no preço (ex.: 0.01)"),
    uf_emitente: Optional[str] = typer.Option(None, help="Código IBGE da UF (ex.: 35)"),
    serie_fiscal: Optional[str] = typer.Option(None, help="Série do documento fiscal"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Define parâmetros (apenas os informados são alterados)."""
    items: List[tuple[str, str]] = []
    if validar_preco_servidor is not None:
        items.append(("validar_preco_servidor", "1" if validar_preco_servidor else "0"))
    if tolerancia_preco is not None:
        items.append(("tolerancia_preco", str(tolerancia_preco)))
    if uf_emitente is not None:
        items.append(("uf_emitente", uf_emitente))
    if serie_fiscal is not None:
        items.append(("serie_fiscal", serie_fiscal))
    if not items:
        typer.echo("Nada a alterar. Informe pelo menos um parâmetro.")
        raise typer.Exit(code=1)
    ParamsRepo(db_path).set_many(items)
    typer.echo(">> Parâmetros atualizados.")


@params_app.command("get")
def cmd_params_get(
    chave: str = typer.Argument(..., help="Ex.: validar_preco_servidor | tolerancia_preco | uf_emitente"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Mostra um parâmetro específico."""
    val = ParamsRepo(db_path).get(chave)
    typer.echo("(None)" if val is None else val)


@params_app.command("show")
def cmd_params_show(db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")):
    """Exibe os parâmetros efetivos (com fallback para defaults)."""
    repo = ParamsRepo(db_path)
    defaults = {
        "validar_preco_servidor": DEFAULTS.validar_preco_servidor,
        "tolerancia_preco": DEFAULTS.tolerancia_preco,
        "uf_emitente": DEFAULTS.uf_emitente,
        "serie_fiscal": DEFAULTS.serie_fiscal,
    }
    out: Dict[str, Any] = {
        "validar_preco_servidor": repo.get_bool("validar_preco_servidor", DEFAULTS.validar_preco_servidor),
        "tolerancia_preco": repo.get_float("tolerancia_preco", DEFAULTS.tolerancia_preco),
        "uf_emitente": repo.get("uf_emitente", DEFAULTS.uf_emitente),
        "serie_fiscal": repo.get("serie_fiscal", DEFAULTS.serie_fiscal),
        "_defaults": defaults,
        "_db": db_path,
    }
    _display_table(out, title="Parâmetros do Caixa")


# -----------------------
# empresa
# -----------------------

empresa_app = typer.Typer(help="Dados da empresa (cupom e documento fiscal).")
app.add_typer(empresa_app, name="empresa")


@empresa_app.command("set")
def cmd_empresa_set(
    razao_social: Optional[str] = typer.Option(None),
    cnpj: Optional[str] = typer.Option(None),
    ie: Optional[str] = typer.Option(None),
    endereco: Optional[str] = typer.Option(None),
    regime: Optional[str] = typer.Option(None, help="Simples Nacional | Lucro Presumido | Lucro Real"),
    nome_loja: Optional[str] = typer.Option(None),
    chave_pix: Optional[str] = typer.Option(None),
    custos_fixos: Optional[float] = typer.Option(None),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Atualiza os dados informados da empresa."""
    valores = dict(
        razao_social=razao_social, cnpj=cnpj, ie=ie, endereco=endereco, regime=regime,
        nome_loja=nome_loja, chave_pix=chave_pix, custos_fixos=custos_fixos,
    )
    items = [(k, str(valores[k])) for k in CHAVES_EMPRESA if valores.get(k) is not None]
    if not items:
        typer.echo("Nada a alterar. Informe pelo menos um campo.")
        raise typer.Exit(code=1)
    ParamsRepo(db_path).set_many(items)
    typer.echo(">> Dados da empresa atualizados.")


@empresa_app.command("show")
def cmd_empresa_show(db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")):
    """Mostra os dados da empresa."""
    _display_table(vars(ParamsRepo(db_path).get_empresa()), title="Empresa")


# -----------------------
# insumos
# -----------------------

insumo_app = typer.Typer(help="Cadastro e estoque de insumos.")
app.add_typer(insumo_app, name="insumo")


@insumo_app.command("add")
def cmd_insumo_add(
    nome: str = typer.Option(..., help="Nome do insumo"),
    unidade: str = typer.Option("un", help="ml | l | g | kg | un"),
    custo: float = typer.Option(0.0, help="Custo da embalagem"),
    volume: float = typer.Option(1.0, help="Conteúdo da embalagem na unidade"),
    estoque: float = typer.Option(0.0, help="Estoque inicial (na unidade)"),
    minimo: float = typer.Option(0.0, help="Estoque mínimo para alerta"),
    codigo_barras: Optional[str] = typer.Option(None),
    fornecedor: Optional[str] = typer.Option(None),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Cadastra um insumo (o estoque inicial entra como movimento)."""
    with _erros_do_operador():
        insumo = criar_insumo(
            {
                "nome": nome, "unidade": unidade, "custo_embalagem": custo, "volume_embalagem": volume,
                "estoque_minimo": minimo, "codigo_barras": codigo_barras, "fornecedor": fornecedor,
            },
            estoque_inicial=estoque,
            db_path=db_path,
        )
    _display_table(vars(insumo), title="Insumo Cadastrado")


@insumo_app.command("list")
def cmd_insumo_list(db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")):
    """Lista insumos com saldo e custo unitário."""
    rows = [
        {
            "id": i.id, "nome": i.nome, "unidade": i.unidade, "estoque": i.estoque_atual,
            "minimo": i.estoque_minimo, "custo_unitario": i.custo_unitario,
        }
        for i in InsumoRepo(db_path).get_all()
    ]
    _display_table(rows, title="Insumos")


@insumo_app.command("custo")
def cmd_insumo_custo(
    insumo_id: str = typer.Argument(...),
    custo: float = typer.Argument(..., help="Novo custo da embalagem"),
    volume: Optional[float] = typer.Option(None, help="Novo conteúdo da embalagem"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Atualiza o custo da embalagem; vendas já feitas mantêm o custo antigo."""
    with _erros_do_operador():
        insumo = atualizar_custo_insumo(insumo_id, custo, volume, db_path=db_path)
    _display_table(vars(insumo), title="Insumo Atualizado")


@insumo_app.command("entrada")
def cmd_insumo_entrada(
    insumo_id: str = typer.Argument(...),
    quantidade: float = typer.Argument(..., help="Quantidade na unidade do insumo"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Registra entrada de mercadoria."""
    with _erros_do_operador():
        saldo = registrar_entrada_insumo(insumo_id, quantidade, db_path=db_path)
    typer.echo(f">> Entrada registrada. Saldo: {saldo:g}")


@insumo_app.command("ajuste")
def cmd_insumo_ajuste(
    insumo_id: str = typer.Argument(...),
    estoque: float = typer.Argument(..., help="Saldo contado"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Acerto de inventário."""
    with _erros_do_operador():
        saldo = ajustar_estoque(insumo_id, estoque, db_path=db_path)
    typer.echo(f">> Estoque ajustado. Saldo: {saldo:g}")


@insumo_app.command("import")
def cmd_insumo_import(
    path: str = typer.Argument(..., help="Caminho do XLSX de INSUMOS"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Importa insumos de um XLSX."""
    with _erros_do_operador():
        info = importar_insumos(path, db_path=db_path)
    _display_table(info, title="Importação de Insumos")


# -----------------------
# produtos
# -----------------------

produto_app = typer.Typer(help="Cadastro de produtos, receitas e faixas de preço.")
app.add_typer(produto_app, name="produto")


@produto_app.command("add")
def cmd_produto_add(
    nome: str = typer.Option(..., help="Nome do produto"),
    preco: float = typer.Option(..., help="Preço base"),
    categoria: Optional[str] = typer.Option(None),
    receita: Optional[str] = typer.Option(None, help="Produto composto: 'insumo_id:qtd,insumo_id:qtd'"),
    revenda: Optional[str] = typer.Option(None, help="Revenda direta: id do insumo"),
    qtd_revenda: Optional[float] = typer.Option(None, help="Unidades de insumo por venda (padrão 1)"),
    faixa: Optional[List[str]] = typer.Option(None, help="Faixa de preço 'qtd_min:preco' (repetível)"),
    codigo_barras: Optional[str] = typer.Option(None),
    produto_id: Optional[str] = typer.Option(None, "--id", help="Atualiza o produto com este id"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Cadastra (ou atualiza com --id) um produto."""
    with _erros_do_operador():
        itens = [ItemReceita(insumo_id=i, quantidade=q) for i, q in _parse_pares(receita, "--receita")]
        produto = salvar_produto(
            {
                "id": produto_id,
                "nome": nome,
                "preco": preco,
                "categoria": categoria,
                "composto": bool(itens),
                "receita": itens,
                "insumo_revenda_id": revenda,
                "quantidade_revenda": qtd_revenda,
                "faixas_preco": _faixas(faixa),
                "codigo_barras": codigo_barras,
            },
            db_path=db_path,
        )
    typer.echo(f">> Produto salvo: {produto.id}")


@produto_app.command("list")
def cmd_produto_list(
    q: Optional[str] = typer.Option(None, "--q", help="Busca por nome, código de barras ou categoria"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Lista produtos com custo e margem atuais."""
    insumos = InsumoRepo(db_path).map_by_id()
    rows = []
    for p in ProdutoRepo(db_path).get_all(q=q):
        custo = custo_unitario(p, insumos)
        rows.append({
            "id": p.id, "nome": p.nome, "categoria": p.categoria or "",
            "tipo": "composto" if p.composto else ("revenda" if p.insumo_revenda_id else "-"),
            "preco": p.preco, "custo": custo, "lucro": p.preco - custo,
        })
    _display_table(rows, title="Produtos")


@produto_app.command("show")
def cmd_produto_show(
    produto_id: str = typer.Argument(...),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Mostra produto, receita, faixas de preço e lotes abertos."""
    produto = ProdutoRepo(db_path).get(produto_id)
    if produto is None:
        console.print(f"[bold red]Não encontrado:[/] {escape(produto_id)}")
        raise typer.Exit(code=1)
    insumos = InsumoRepo(db_path).map_by_id()
    _display_table(
        {
            "id": produto.id, "nome": produto.nome, "categoria": produto.categoria,
            "preco": produto.preco, "composto": produto.composto,
            "insumo_revenda": produto.insumo_revenda_id, "qtd_revenda": produto.quantidade_revenda,
            "custo": custo_unitario(produto, insumos),
        },
        title="Produto",
    )
    if produto.receita:
        _display_table(
            [
                {"insumo": insumos[r.insumo_id].nome if r.insumo_id in insumos else f"(removido) {r.insumo_id}",
                 "quantidade": r.quantidade}
                for r in produto.receita
            ],
            title="Receita",
        )
    if produto.faixas_preco:
        _display_table(
            [{"a_partir_de": f.quantidade_minima, "preco_unitario": f.preco_unitario} for f in produto.faixas_preco],
            title="Faixas de Preço",
        )
    if produto.lotes:
        _display_table(
            [
                {"lote": l.numero or l.id[:8], "validade": l.validade or "-",
                 "saldo": l.estoque_atual, "recebido": l.estoque_inicial}
                for l in produto.lotes
            ],
            title="Lotes",
        )


@produto_app.command("lote")
def cmd_produto_lote(
    produto_id: str = typer.Argument(...),
    quantidade: float = typer.Option(..., help="Unidades recebidas"),
    validade: Optional[str] = typer.Option(None, help="Validade (YYYY-MM-DD)"),
    numero: Optional[str] = typer.Option(None, help="Número do lote do fabricante"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Registra o recebimento de um lote do produto."""
    with _erros_do_operador():
        lote = registrar_lote(produto_id, quantidade, validade=validade, numero=numero, db_path=db_path)
    typer.echo(f">> Lote registrado: {lote.id}")


@produto_app.command("baixa-lote")
def cmd_produto_baixa_lote(
    lote_id: str = typer.Argument(...),
    quantidade: float = typer.Argument(..., help="Unidades retiradas do lote"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Retira unidades de um lote (venda avulsa, quebra, vencimento)."""
    with _erros_do_operador():
        lote = baixar_lote(lote_id, quantidade, db_path=db_path)
    typer.echo(f">> Saldo do lote: {lote.estoque_atual:g}")


@produto_app.command("preco")
def cmd_produto_preco(
    produto_id: str = typer.Argument(...),
    faixa: Optional[List[str]] = typer.Option(None, help="Faixa 'qtd_min:preco' (repetível; vazio remove todas)"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Substitui as faixas de preço do produto."""
    with _erros_do_operador():
        produto = definir_faixas(produto_id, _faixas(faixa), db_path=db_path)
    typer.echo(f">> {len(produto.faixas_preco)} faixa(s) de preço em {produto.nome}")


# -----------------------
# vendas
# -----------------------

venda_app = typer.Typer(help="Checkout e consulta de vendas.")
app.add_typer(venda_app, name="venda")


@venda_app.command("registrar")
def cmd_venda_registrar(
    pedido: str = typer.Argument(..., help="JSON do pedido, caminho de arquivo .json ou '-' (stdin)"),
    fiscal: bool = typer.Option(False, "--fiscal", help="Emitir documento fiscal simulado"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Registra uma venda a partir do pedido em JSON (formato do caixa)."""
    with _erros_do_operador():
        if pedido == "-":
            texto = sys.stdin.read()
        elif pedido.lstrip().startswith("{"):
            texto = pedido
        else:
            texto = Path(pedido).read_text(encoding="utf-8")
        try:
            payload = json.loads(texto)
        except json.JSONDecodeError as e:
            raise ValueError(f"JSON inválido: {e}") from None
        venda = registrar_venda(payload, db_path=db_path, emitir_fiscal=fiscal)
    console.print(f"[bold green]Venda registrada:[/] {venda.id}")
    _display_venda(venda)


@venda_app.command("list")
def cmd_venda_list(
    inicio: Optional[str] = typer.Option(None, help="YYYY-MM-DD"),
    fim: Optional[str] = typer.Option(None, help="YYYY-MM-DD"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Lista vendas do período."""
    rows = [
        {
            "id": v["id"], "data": v["date"], "pagamento": v["paymentMethod"],
            "itens": len(v["items"]), "total": v["total"], "custo": v["cost"], "lucro": v["profit"],
        }
        for v in relatorio_vendas(inicio=inicio, fim=fim, db_path=db_path)
    ]
    _display_table(rows, title="Vendas")


@venda_app.command("show")
def cmd_venda_show(
    venda_id: str = typer.Argument(...),
    como_json: bool = typer.Option(False, "--json", help="Saída em JSON"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Mostra uma venda."""
    with _erros_do_operador():
        venda = obter_venda(venda_id, db_path=db_path)
    if como_json:
        _print_json(venda.to_dict())
    else:
        _display_venda(venda)


# -----------------------
# fiscal
# -----------------------

fiscal_app = typer.Typer(help="Documento fiscal simulado (sem valor fiscal).")
app.add_typer(fiscal_app, name="fiscal")


@fiscal_app.command("emitir")
def cmd_fiscal_emitir(
    venda_id: str = typer.Argument(...),
    tipo: str = typer.Option("NFCe", help="NFCe | NFe"),
    xml: Optional[Path] = typer.Option(None, "--xml", help="Salvar o XML neste caminho"),
    pdf: Optional[Path] = typer.Option(None, "--pdf", help="Salvar o DANFE em PDF neste caminho"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Gera e anexa o documento fiscal simulado de uma venda."""
    with _erros_do_operador():
        venda = emitir_documento_fiscal(venda_id, db_path=db_path, tipo=tipo)
    doc = venda.fiscal
    console.print(f"[bold green]Chave de acesso:[/] {doc.chave_acesso}")
    if xml is not None:
        xml.write_text(doc.xml_conteudo, encoding="utf-8")
        typer.echo(f">> XML salvo em {xml}")
    if pdf is not None:
        gerar_pdf(venda, ParamsRepo(db_path).get_empresa(), doc, pdf)
        typer.echo(f">> PDF salvo em {pdf}")


# -----------------------
# despesas / perdas
# -----------------------

despesa_app = typer.Typer(help="Despesas (DRE).")
app.add_typer(despesa_app, name="despesa")


@despesa_app.command("add")
def cmd_despesa_add(
    descricao: str = typer.Option(...),
    valor: float = typer.Option(...),
    categoria: str = typer.Option("Outros", help=" | ".join(CATEGORIAS_DESPESA)),
    data: Optional[str] = typer.Option(None, help="YYYY-MM-DD (padrão: agora)"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Lança uma despesa."""
    with _erros_do_operador():
        despesa_id = registrar_despesa(descricao, valor, categoria=categoria, data=data, db_path=db_path)
    typer.echo(f">> Despesa registrada: {despesa_id}")


@despesa_app.command("list")
def cmd_despesa_list(
    ano: Optional[int] = typer.Option(None),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Lista despesas."""
    _display_table([vars(d) for d in DespesaRepo(db_path).get_all(ano=ano)], title="Despesas")


perda_app = typer.Typer(help="Perdas e quebras (DRE).")
app.add_typer(perda_app, name="perda")


@perda_app.command("add")
def cmd_perda_add(
    descricao: str = typer.Option(...),
    valor: float = typer.Option(..., help="Valor de custo perdido"),
    quantidade: float = typer.Option(1.0),
    data: Optional[str] = typer.Option(None, help="YYYY-MM-DD (padrão: agora)"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Lança uma perda."""
    with _erros_do_operador():
        perda_id = registrar_perda(descricao, valor, quantidade=quantidade, data=data, db_path=db_path)
    typer.echo(f">> Perda registrada: {perda_id}")


@perda_app.command("list")
def cmd_perda_list(
    ano: Optional[int] = typer.Option(None),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Lista perdas."""
    _display_table([vars(p) for p in PerdaRepo(db_path).get_all(ano=ano)], title="Perdas")


# -----------------------
# relatórios
# -----------------------

rel_app = typer.Typer(help="Relatórios gerenciais")
app.add_typer(rel_app, name="rel")


@rel_app.command("dre")
def rel_dre(
    ano: int = typer.Option(date.today().year, help="Ano do DRE"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """DRE gerencial mensal."""
    linhas = relatorio_dre(ano, db_path=db_path)
    _display_table(linhas + [totais_dre(linhas)], title=f"DRE {ano}")


@rel_app.command("dashboard")
def rel_dashboard(db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")):
    """Resumo geral de vendas e estoque."""
    _display_table(resumo_dashboard(db_path=db_path), title="Dashboard")


@rel_app.command("estoque-baixo")
def rel_estoque_baixo(db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")):
    """Insumos no ponto de reposição."""
    _display_table(relatorio_estoque_baixo(db_path=db_path), title="Estoque Baixo")


# -----------------------
# logs
# -----------------------

@app.command("logs")
def cmd_logs(
    tipo: str = typer.Argument("transactions", help="transactions | vendas | estoque | database | system"),
    linhas: int = typer.Option(50, help="Quantidade de linhas"),
):
    """Mostra as últimas linhas de um log (requer PDV_ENABLE_LOGGING=1)."""
    resumo = get_log_summary(tipo, lines=linhas)
    if resumo is None:
        typer.echo("Logging desligado. Defina PDV_ENABLE_LOGGING=1.")
        raise typer.Exit(code=1)
    typer.echo(resumo)


# -----------------------
# caixa (TUI)
# -----------------------

@app.command("caixa")
def cmd_caixa(db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")):
    """Inicia a frente de caixa interativa."""
    from pdv.adapters.tui import main_tui
    try:
        main_tui(db_path=db_path)
    except KeyboardInterrupt:
        typer.echo("\nSaindo do caixa...")
        raise typer.Exit(0)


# Entry point opcional:
def main():
    app()


if __name__ == "__main__":
    main()
