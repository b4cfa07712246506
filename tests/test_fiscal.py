import threading
import xml.etree.ElementTree as ET
from datetime import datetime

import pytest

from pdv.domain.models import Empresa
from pdv.infra.repositories import ParamsRepo, VendaRepo
from pdv.usecases.fiscal import (
    NAMESPACE_NFE,
    digito_verificador,
    emitir_documento_fiscal,
    formatar_chave,
    gerar_chave_acesso,
    gerar_pdf,
    gerar_xml,
    simular_documento,
)
from pdv.usecases.registrar_venda import obter_venda, registrar_venda

NS = {"nfe": NAMESPACE_NFE}


@pytest.fixture
def venda(bar, pedido):
    return registrar_venda(
        pedido((bar["caipirinha"], 2, 18.0), (bar["lata"], 1, 6.0), pagamento="pix"),
        db_path=bar["db_path"],
    )


def _parse(xml: str) -> ET.Element:
    return ET.fromstring(xml.encode("utf-8"))


@pytest.mark.parametrize("base,dv", [("0", "0"), ("1", "9"), ("5", "1"), ("11", "6")])
def test_digito_verificador_modulo_11(base, dv):
    assert digito_verificador(base) == dv


def test_chave_de_acesso_44_digitos():
    quando = datetime(2024, 3, 15, 20, 30)
    chave = gerar_chave_acesso("12.345.678/0001-95", "65", 1, 42, quando, uf="35", codigo_numerico="12345678")

    assert len(chave) == 44
    assert chave.isdigit()
    assert chave[:43] == "35" "2403" "12345678000195" "65" "001" "000000042" "1" "12345678"
    assert chave[-1] == digito_verificador(chave[:43])
    assert formatar_chave(chave).count(" ") == 10


def test_chave_sem_cnpj_usa_zeros():
    chave = gerar_chave_acesso(None, "55", "1", "1", datetime(2024, 1, 1))
    assert len(chave) == 44
    assert chave[6:20] == "0" * 14


def test_xml_nfce(venda):
    empresa = Empresa(razao_social="Bar do Zé LTDA", cnpj="12345678000195", regime="Simples Nacional")
    xml = gerar_xml("NFCe", empresa, venda, serie="1", numero="7")

    assert xml.startswith('<?xml version="1.0" encoding="UTF-8"?>')
    root = _parse(xml)
    assert root.tag == f"{{{NAMESPACE_NFE}}}NFCe"
    assert root.find(".//nfe:ide/nfe:mod", NS).text == "65"
    assert root.find(".//nfe:ide/nfe:nNF", NS).text == "7"
    assert root.find(".//nfe:emit/nfe:CNPJ", NS).text == "12345678000195"
    assert root.find(".//nfe:emit/nfe:CRT", NS).text == "1"
    assert root.find(".//nfe:dest/nfe:xNome", NS).text == "CONSUMIDOR FINAL"
    assert root.find(".//nfe:ICMSTot/nfe:vNF", NS).text == "42.00"
    assert root.find(".//nfe:pag/nfe:detPag/nfe:tPag", NS).text == "17"
    dets = root.findall(".//nfe:det", NS)
    assert [d.find("nfe:prod/nfe:xProd", NS).text for d in dets] == ["Caipirinha", "Cerveja"]


def test_xml_nfe_modelo_55(venda):
    root = _parse(gerar_xml("NFe", Empresa(), venda))
    assert root.find(".//nfe:ide/nfe:mod", NS).text == "55"
    assert root.find(".//nfe:emit/nfe:xNome", NS).text == "EMPRESA TESTE LTDA"
    assert root.find(".//nfe:emit/nfe:CRT", NS).text == "3"


def test_tipo_invalido(venda):
    with pytest.raises(ValueError):
        gerar_xml("CTe", Empresa(), venda)


def test_simular_documento(venda):
    doc = simular_documento(venda, Empresa(cnpj="12345678000195"), numero=3, quando=datetime(2024, 5, 1))
    assert doc.numero == "3"
    assert doc.serie == "1"
    assert doc.emitido_em == "2024-05-01T00:00:00"
    assert doc.chave_acesso in doc.xml_conteudo


def test_emitir_anexa_sem_alterar_a_venda(venda, bar):
    db = bar["db_path"]
    ParamsRepo(db).set_empresa({"razao_social": "Bar do Zé LTDA", "cnpj": "12345678000195"})

    emitida = emitir_documento_fiscal(venda.id, db_path=db)

    assert emitida.fiscal is not None
    assert emitida.total == venda.total
    assert emitida.itens == venda.itens
    assert len(emitida.fiscal.chave_acesso) == 44
    assert emitida.fiscal.chave_acesso[6:20] == "12345678000195"

    lida = obter_venda(venda.id, db_path=db)
    assert lida.fiscal == emitida.fiscal
    assert lida.total == venda.total


def test_emitir_duas_vezes_devolve_o_mesmo_documento(venda, bar):
    db = bar["db_path"]
    primeira = emitir_documento_fiscal(venda.id, db_path=db)
    segunda = emitir_documento_fiscal(venda.id, db_path=db)
    assert segunda.fiscal == primeira.fiscal


def test_anexar_fiscal_nao_sobrescreve_documento(venda, bar):
    db = bar["db_path"]
    empresa = ParamsRepo(db).get_empresa()
    primeiro = simular_documento(venda, empresa, numero=1)
    segundo = simular_documento(venda, empresa, numero=2)
    repo = VendaRepo(db)

    assert repo.anexar_fiscal(venda.id, primeiro) is True
    assert repo.anexar_fiscal(venda.id, segundo) is False
    assert obter_venda(venda.id, db_path=db).fiscal == primeiro

    with pytest.raises(KeyError):
        repo.anexar_fiscal("nao-existe", primeiro)


def test_emissoes_simultaneas_geram_um_documento(venda, bar):
    db = bar["db_path"]
    barreira = threading.Barrier(2)
    emitidas, erros = [], []

    def emitir():
        barreira.wait()
        try:
            emitidas.append(emitir_documento_fiscal(venda.id, db_path=db))
        except Exception as e:
            erros.append(e)

    threads = [threading.Thread(target=emitir) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert erros == []
    assert len(emitidas) == 2
    assert emitidas[0].fiscal == emitidas[1].fiscal
    assert obter_venda(venda.id, db_path=db).fiscal == emitidas[0].fiscal
    assert ParamsRepo(db).get("ultimo_numero_fiscal") == "1"


def test_numeracao_sequencial(bar, pedido):
    db = bar["db_path"]
    numeros = []
    for _ in range(3):
        v = registrar_venda(pedido((bar["lata"], 1, 6.0)), db_path=db)
        numeros.append(emitir_documento_fiscal(v.id, db_path=db).fiscal.numero)
    assert numeros == ["1", "2", "3"]


def test_emitir_venda_inexistente(db_path):
    with pytest.raises(KeyError):
        emitir_documento_fiscal("nao-existe", db_path=db_path)


def test_checkout_com_fiscal(bar, pedido):
    venda = registrar_venda(pedido((bar["lata"], 2, 6.0)), db_path=bar["db_path"], emitir_fiscal=True)
    assert venda.fiscal is not None
    assert obter_venda(venda.id, db_path=bar["db_path"]).fiscal == venda.fiscal


def test_falha_no_fiscal_nao_desfaz_a_venda(bar, pedido, monkeypatch):
    def quebra(*args, **kwargs):
        raise RuntimeError("sefaz fora do ar")

    monkeypatch.setattr("pdv.usecases.registrar_venda.emitir_documento_fiscal", quebra)

    venda = registrar_venda(pedido((bar["lata"], 2, 6.0)), db_path=bar["db_path"], emitir_fiscal=True)

    assert venda.fiscal is None
    assert VendaRepo(bar["db_path"]).count() == 1


def test_pdf_danfe(venda, tmp_path):
    empresa = Empresa(razao_social="Bar do Zé LTDA", cnpj="12345678000195", endereco="Rua A, 10")
    doc = simular_documento(venda, empresa)
    destino = tmp_path / "danfe.pdf"

    pdf = gerar_pdf(venda, empresa, doc, destino=destino)

    assert pdf.startswith(b"%PDF")
    assert destino.read_bytes() == pdf
