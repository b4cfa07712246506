import pytest

from pdv.infra.migrations import apply_migrations
from pdv.infra.views import create_views
from pdv.usecases.cadastros import criar_insumo, salvar_produto


@pytest.fixture
def db_path(tmp_path):
    path = str(tmp_path / "pdv_test.sqlite")
    apply_migrations(path)
    create_views(path)
    return path


@pytest.fixture
def bar(db_path):
    """Cadastro mínimo de um bar: vodka, limão, cerveja em lata e refrigerante em fardo."""
    vodka = criar_insumo(
        {"nome": "Vodka", "unidade": "ml", "custo_embalagem": 50.0, "volume_embalagem": 1000},
        estoque_inicial=1000,
        db_path=db_path,
    )
    limao = criar_insumo(
        {"nome": "Limão", "unidade": "un", "custo_embalagem": 0.5, "volume_embalagem": 1},
        estoque_inicial=100,
        db_path=db_path,
    )
    cerveja = criar_insumo(
        {"nome": "Cerveja lata", "unidade": "un", "custo_embalagem": 36.0, "volume_embalagem": 12},
        estoque_inicial=48,
        db_path=db_path,
    )
    caipirinha = salvar_produto(
        {
            "nome": "Caipirinha",
            "preco": 18.0,
            "composto": True,
            "receita": [
                {"insumo_id": vodka.id, "quantidade": 50},
                {"insumo_id": limao.id, "quantidade": 1},
            ],
        },
        db_path=db_path,
    )
    lata = salvar_produto(
        {
            "nome": "Cerveja",
            "preco": 6.0,
            "insumo_revenda_id": cerveja.id,
            "faixas_preco": [{"quantidade_minima": 10, "preco_unitario": 5.0}],
        },
        db_path=db_path,
    )
    return {
        "db_path": db_path,
        "vodka": vodka,
        "limao": limao,
        "cerveja": cerveja,
        "caipirinha": caipirinha,
        "lata": lata,
    }


def _pedido(*linhas, pagamento="cash", total=None, **extra):
    items = [
        {"productId": p.id, "productName": p.nome, "quantity": q, "priceAtSale": preco}
        for p, q, preco in linhas
    ]
    if total is None:
        total = round(sum(q * preco for _, q, preco in linhas), 2)
    return {"total": total, "paymentMethod": pagamento, "items": items, **extra}


@pytest.fixture
def pedido():
    """Monta o payload do caixa a partir de tuplas (produto, quantidade, preco)."""
    return _pedido
