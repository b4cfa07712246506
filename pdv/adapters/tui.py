# pdv/adapters/tui.py
"""
Frente de caixa interativa usando Rich.

Fluxo do operador:
- buscar produto (nome, código de barras ou categoria) e adicionar ao carrinho
- alterar quantidades (o preço da linha acompanha as faixas de quantidade)
- finalizar: escolhe a forma de pagamento e envia o pedido ao checkout

Quando o checkout recusa a venda (estoque, produto removido, preço), o
carrinho é mantido para o operador corrigir e reenviar.
"""

from __future__ import annotations

from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt, Confirm, IntPrompt
from rich.table import Table
from rich.align import Align
from rich.markup import escape

from pdv.config import DB_PATH
from pdv.domain.carrinho import Carrinho
from pdv.domain.errors import ErroCheckout
from pdv.domain.models import FormaPagamento, Produto
from pdv.infra.migrations import apply_migrations
from pdv.infra.views import create_views
from pdv.infra.repositories import ParamsRepo, ProdutoRepo
from pdv.usecases.registrar_venda import registrar_venda
from pdv.usecases.relatorios import relatorio_estoque_baixo

_PAGAMENTOS = {
    "1": FormaPagamento.DINHEIRO,
    "2": FormaPagamento.PIX,
    "3": FormaPagamento.DEBITO,
    "4": FormaPagamento.CREDITO,
}


def _moeda(valor: float) -> str:
    return f"R$ {valor:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")


class CaixaTUI:
    """Frente de caixa em modo texto."""

    def __init__(self, db_path: str = DB_PATH, console: Optional[Console] = None):
        self.console = console or Console()
        self.db_path = db_path
        self.carrinho = Carrinho()
        self.produtos = ProdutoRepo(db_path)

    def run(self) -> None:
        """Inicia o loop do caixa."""
        apply_migrations(self.db_path)
        create_views(self.db_path)
        self.show_banner()

        while True:
            try:
                self.mostrar_carrinho()
                choice = self.show_main_menu()
                if choice == "1":
                    self.adicionar_produto()
                elif choice == "2":
                    self.alterar_quantidade()
                elif choice == "3":
                    self.remover_produto()
                elif choice == "4":
                    self.finalizar_venda()
                elif choice == "5":
                    self.limpar_carrinho()
                elif choice == "6":
                    self.mostrar_estoque_baixo()
                elif choice == "0":
                    if self.carrinho and not Confirm.ask("Carrinho com itens. Sair mesmo assim?", default=False):
                        continue
                    self.console.print("\n[green]Caixa fechado.[/green]")
                    break
            except KeyboardInterrupt:
                self.console.print("\n[red]Saindo...[/red]")
                break
            except Exception as e:
                self.console.print(f"[red]Erro: {escape(str(e))}[/red]")

    def show_banner(self) -> None:
        loja = ParamsRepo(self.db_path).get_empresa().nome_loja or "PDV"
        banner = Panel.fit(
            f"[bold blue]{escape(loja)}[/bold blue]\n[cyan]Frente de Caixa[/cyan]",
            border_style="blue",
        )
        self.console.print("\n")
        self.console.print(Align.center(banner))
        self.console.print("\n")

    def show_main_menu(self) -> str:
        menu = Panel(
            "[yellow]1.[/yellow] Adicionar produto\n"
            "[yellow]2.[/yellow] Alterar quantidade\n"
            "[yellow]3.[/yellow] Remover produto\n"
            "[yellow]4.[/yellow] Finalizar venda\n"
            "[yellow]5.[/yellow] Limpar carrinho\n"
            "[yellow]6.[/yellow] Insumos com estoque baixo\n"
            "[yellow]0.[/yellow] Sair\n",
            title="Caixa",
            border_style="green",
        )
        self.console.print(menu)
        return Prompt.ask("Escolha uma opção", choices=["0", "1", "2", "3", "4", "5", "6"])

    # -----------------------
    # carrinho
    # -----------------------

    def mostrar_carrinho(self) -> None:
        if not self.carrinho:
            self.console.print("[dim]Carrinho vazio[/dim]")
            return
        table = Table(title="Carrinho", show_header=True, header_style="bold magenta")
        table.add_column("#", justify="right")
        table.add_column("Produto", style="cyan")
        table.add_column("Qtd", justify="right")
        table.add_column("Preço", justify="right")
        table.add_column("Subtotal", justify="right")
        for n, linha in enumerate(self.carrinho.linhas, start=1):
            destaque = " [green](faixa)[/green]" if linha.preco_unitario != linha.produto.preco else ""
            table.add_row(
                str(n),
                escape(linha.produto.nome),
                str(linha.quantidade),
                _moeda(linha.preco_unitario) + destaque,
                _moeda(linha.subtotal),
            )
        self.console.print(table)
        self.console.print(f"[bold]TOTAL: {_moeda(self.carrinho.total)}[/bold]")

    def _buscar(self, termo: str) -> List[Produto]:
        return self.produtos.get_all(q=termo.strip() or None)

    def _escolher_linha(self) -> Optional[str]:
        linhas = self.carrinho.linhas
        if not linhas:
            self.console.print("[yellow]Carrinho vazio.[/yellow]")
            return None
        n = IntPrompt.ask("Número da linha", default=1)
        if not 1 <= n <= len(linhas):
            self.console.print("[red]Linha inválida![/red]")
            return None
        return linhas[n - 1].produto.id

    def adicionar_produto(self) -> None:
        encontrados = self._buscar(Prompt.ask("Buscar (nome, código de barras ou categoria)", default=""))
        if not encontrados:
            self.console.print("[yellow]Nenhum produto encontrado.[/yellow]")
            return
        if len(encontrados) == 1:
            produto = encontrados[0]
        else:
            table = Table(title="Produtos", show_header=True, header_style="bold magenta")
            table.add_column("#", justify="right")
            table.add_column("Produto", style="cyan")
            table.add_column("Preço", justify="right")
            for n, p in enumerate(encontrados[:20], start=1):
                table.add_row(str(n), escape(p.nome), _moeda(p.preco))
            self.console.print(table)
            n = IntPrompt.ask("Escolha o produto", default=1)
            if not 1 <= n <= min(len(encontrados), 20):
                self.console.print("[red]Opção inválida![/red]")
                return
            produto = encontrados[n - 1]
        qtd = IntPrompt.ask("Quantidade", default=1)
        linha = self.carrinho.adicionar(produto, qtd)
        self.console.print(f"[green]+ {escape(produto.nome)} ({linha.quantidade})[/green]")

    def alterar_quantidade(self) -> None:
        produto_id = self._escolher_linha()
        if produto_id is None:
            return
        delta = IntPrompt.ask("Somar à quantidade (use negativo para tirar)", default=1)
        if self.carrinho.alterar(produto_id, delta) is None:
            self.console.print("[yellow]Linha removida.[/yellow]")

    def remover_produto(self) -> None:
        produto_id = self._escolher_linha()
        if produto_id is not None:
            self.carrinho.remover(produto_id)

    def limpar_carrinho(self) -> None:
        if Confirm.ask("Limpar o carrinho?", default=False):
            self.carrinho.limpar()

    # -----------------------
    # checkout
    # -----------------------

    def finalizar_venda(self) -> None:
        if not self.carrinho:
            self.console.print("[yellow]Carrinho vazio.[/yellow]")
            return
        self.console.print(
            "Pagamento: [yellow]1.[/yellow] Dinheiro  [yellow]2.[/yellow] PIX  "
            "[yellow]3.[/yellow] Débito  [yellow]4.[/yellow] Crédito"
        )
        forma = _PAGAMENTOS[Prompt.ask("Forma de pagamento", choices=list(_PAGAMENTOS), default="1")]
        cliente = Prompt.ask("Cliente (opcional)", default="").strip() or None
        emitir = Confirm.ask("Emitir cupom fiscal (simulado)?", default=False)

        pedido = self.carrinho.para_checkout(forma, cliente_nome=cliente)
        try:
            venda = registrar_venda(pedido, db_path=self.db_path, emitir_fiscal=emitir)
        except ErroCheckout as e:
            self.console.print(Panel(f"[bold red]{escape(str(e))}[/bold red]", title="Venda recusada", border_style="red"))
            return

        self.carrinho.limpar()
        texto = f"[bold green]Venda registrada[/bold green]\nTotal: {_moeda(venda.total)}\nID: {venda.id}"
        if venda.fiscal is not None:
            texto += f"\nChave: {venda.fiscal.chave_acesso}"
        self.console.print(Panel(texto, border_style="green"))

    def mostrar_estoque_baixo(self) -> None:
        rows = relatorio_estoque_baixo(db_path=self.db_path)
        if not rows:
            self.console.print("[green]Nenhum insumo abaixo do mínimo.[/green]")
            return
        table = Table(title="Estoque Baixo", show_header=True, header_style="bold magenta")
        for col in ("Insumo", "Estoque", "Mínimo", "Unidade"):
            table.add_column(col, style="cyan" if col == "Insumo" else None)
        for r in rows:
            table.add_row(escape(r["nome"]), f"{r['estoque_atual']:g}", f"{r['estoque_minimo']:g}", r["unidade"])
        self.console.print(table)


def main_tui(db_path: str = DB_PATH):
    """Ponto de entrada principal da TUI."""
    tui = CaixaTUI(db_path=db_path)
    tui.run()


if __name__ == "__main__":
    main_tui()
