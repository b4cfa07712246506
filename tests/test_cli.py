import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from pdv.adapters.cli import app
from pdv.infra.repositories import InsumoRepo, VendaRepo

runner = CliRunner()


@pytest.fixture
def cli_db(tmp_path: Path) -> str:
    db_path = str(tmp_path / "pdv_cli.sqlite")
    result = runner.invoke(app, ["migrate", "--db", db_path])
    assert result.exit_code == 0, result.output
    return db_path


def _cadastrar_dose(db_path: str) -> str:
    result = runner.invoke(
        app,
        ["insumo", "add", "--nome", "Vodka", "--unidade", "ml", "--custo", "50", "--volume", "1000",
         "--estoque", "1000", "--db", db_path],
    )
    assert result.exit_code == 0, result.output
    vodka = InsumoRepo(db_path).find_by_nome("Vodka")

    result = runner.invoke(
        app,
        ["produto", "add", "--nome", "Dose", "--preco", "12", "--receita", f"{vodka.id}:50",
         "--faixa", "10:10", "--db", db_path],
    )
    assert result.exit_code == 0, result.output
    return result.output.split(">> Produto salvo:")[1].strip()


def _pedido_json(produto_id: str, quantidade: int, preco: float) -> str:
    return json.dumps({
        "total": quantidade * preco,
        "paymentMethod": "cash",
        "items": [{"productId": produto_id, "productName": "Dose", "quantity": quantidade, "priceAtSale": preco}],
    })


def test_cli_params_set_and_get(cli_db):
    result = runner.invoke(
        app, ["params", "set", "--nao-validar-preco", "--tolerancia-preco", "0.05", "--db", cli_db]
    )
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["params", "get", "validar_preco_servidor", "--db", cli_db])
    assert result.exit_code == 0
    assert result.output.strip() == "0"

    result = runner.invoke(app, ["params", "get", "tolerancia_preco", "--db", cli_db])
    assert result.output.strip() == "0.05"

    result = runner.invoke(app, ["params", "get", "nao_existe", "--db", cli_db])
    assert result.output.strip() == "(None)"


def test_cli_params_set_sem_valores(cli_db):
    result = runner.invoke(app, ["params", "set", "--db", cli_db])
    assert result.exit_code == 1


def test_cli_params_show(cli_db):
    result = runner.invoke(app, ["params", "show", "--db", cli_db])
    assert result.exit_code == 0, result.output
    assert "validar_preco_servidor" in result.output
    assert "tolerancia_preco" in result.output


def test_cli_insumo_e_produto(cli_db):
    produto_id = _cadastrar_dose(cli_db)

    result = runner.invoke(app, ["insumo", "list", "--db", cli_db])
    assert result.exit_code == 0, result.output
    assert "Insumos" in result.output

    result = runner.invoke(app, ["produto", "show", produto_id, "--db", cli_db])
    assert result.exit_code == 0, result.output
    assert "Receita" in result.output
    assert "Faixas de Preço" in result.output


def test_cli_entrada_e_ajuste(cli_db):
    _cadastrar_dose(cli_db)
    vodka = InsumoRepo(cli_db).find_by_nome("Vodka")

    result = runner.invoke(app, ["insumo", "entrada", vodka.id, "500", "--db", cli_db])
    assert result.exit_code == 0, result.output
    assert ">> Entrada registrada. Saldo: 1500" in result.output

    result = runner.invoke(app, ["insumo", "ajuste", vodka.id, "1400", "--db", cli_db])
    assert result.exit_code == 0, result.output
    assert InsumoRepo(cli_db).get(vodka.id).estoque_atual == 1400.0

    result = runner.invoke(app, ["insumo", "entrada", "nao-existe", "5", "--db", cli_db])
    assert result.exit_code == 1


def test_cli_venda_registrar_e_show(cli_db):
    produto_id = _cadastrar_dose(cli_db)

    result = runner.invoke(app, ["venda", "registrar", _pedido_json(produto_id, 2, 12.0), "--db", cli_db])
    assert result.exit_code == 0, result.output
    assert "Venda registrada:" in result.output
    (venda,) = VendaRepo(cli_db).list()

    result = runner.invoke(app, ["venda", "show", venda.id, "--json", "--db", cli_db])
    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["total"] == 24.0
    assert data["items"][0]["costAtSale"] == pytest.approx(5.0)
    assert InsumoRepo(cli_db).find_by_nome("Vodka").estoque_atual == 900.0


def test_cli_venda_de_arquivo(cli_db, tmp_path):
    produto_id = _cadastrar_dose(cli_db)
    arquivo = tmp_path / "pedido.json"
    arquivo.write_text(_pedido_json(produto_id, 1, 12.0), encoding="utf-8")

    result = runner.invoke(app, ["venda", "registrar", str(arquivo), "--db", cli_db])
    assert result.exit_code == 0, result.output
    assert VendaRepo(cli_db).count() == 1


def test_cli_venda_recusada(cli_db):
    produto_id = _cadastrar_dose(cli_db)

    result = runner.invoke(app, ["venda", "registrar", _pedido_json(produto_id, 30, 10.0), "--db", cli_db])
    assert result.exit_code == 1
    assert "Estoque insuficiente" in result.output

    result = runner.invoke(app, ["venda", "registrar", "{oops", "--db", cli_db])
    assert result.exit_code == 1
    assert "JSON inválido" in result.output

    assert VendaRepo(cli_db).count() == 0


def test_cli_fiscal_emitir(cli_db, tmp_path):
    produto_id = _cadastrar_dose(cli_db)
    runner.invoke(app, ["venda", "registrar", _pedido_json(produto_id, 2, 12.0), "--db", cli_db])
    (venda,) = VendaRepo(cli_db).list()
    xml = tmp_path / "nfce.xml"
    pdf = tmp_path / "danfe.pdf"

    result = runner.invoke(
        app, ["fiscal", "emitir", venda.id, "--xml", str(xml), "--pdf", str(pdf), "--db", cli_db]
    )
    assert result.exit_code == 0, result.output
    assert "Chave de acesso:" in result.output
    assert "<vNF>24.00</vNF>" in xml.read_text(encoding="utf-8")
    assert pdf.read_bytes().startswith(b"%PDF")

    result = runner.invoke(app, ["fiscal", "emitir", "nao-existe", "--db", cli_db])
    assert result.exit_code == 1


def test_cli_relatorios(cli_db):
    produto_id = _cadastrar_dose(cli_db)
    runner.invoke(app, ["venda", "registrar", _pedido_json(produto_id, 2, 12.0), "--db", cli_db])
    runner.invoke(app, ["despesa", "add", "--descricao", "Aluguel", "--valor", "100", "--categoria", "Fixa",
                        "--db", cli_db])

    for args in (["rel", "dre"], ["rel", "dashboard"], ["rel", "estoque-baixo"], ["venda", "list"],
                 ["despesa", "list"]):
        result = runner.invoke(app, args + ["--db", cli_db])
        assert result.exit_code == 0, (args, result.output)

    result = runner.invoke(app, ["despesa", "add", "--descricao", "X", "--valor", "1", "--categoria", "Lazer",
                                 "--db", cli_db])
    assert result.exit_code == 1


def test_cli_lote(cli_db):
    produto_id = _cadastrar_dose(cli_db)

    result = runner.invoke(
        app, ["produto", "lote", produto_id, "--quantidade", "12", "--validade", "2026-11-01",
              "--numero", "L-77", "--db", cli_db],
    )
    assert result.exit_code == 0, result.output
    lote_id = result.output.split(">> Lote registrado:")[1].strip()

    result = runner.invoke(app, ["produto", "show", produto_id, "--db", cli_db])
    assert result.exit_code == 0, result.output
    assert "Lotes" in result.output
    assert "L-77" in result.output

    result = runner.invoke(app, ["produto", "baixa-lote", lote_id, "5", "--db", cli_db])
    assert result.exit_code == 0, result.output
    assert "Saldo do lote: 7" in result.output

    result = runner.invoke(app, ["produto", "baixa-lote", lote_id, "50", "--db", cli_db])
    assert result.exit_code == 1

    result = runner.invoke(app, ["produto", "lote", produto_id, "--quantidade", "3",
                                 "--validade", "amanhã", "--db", cli_db])
    assert result.exit_code == 1
