# app.py
"""
Entrypoint da aplicação.

Uso:
  python app.py migrate --db pdv.db
  python app.py insumo add --nome "Vodka" --unidade ml --custo 50 --volume 1000 --estoque 1000
  python app.py produto add --nome "Caipirinha" --preco 18 --receita "<insumo_id>:50"
  python app.py venda registrar pedido.json
  python app.py caixa
"""

from pdv.adapters.cli import main

if __name__ == "__main__":
    main()
