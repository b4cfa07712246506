# pdv/usecases/fiscal.py
"""
UC: Documento fiscal SIMULADO (NFC-e / NF-e) para uma venda já gravada.

Nada aqui tem valor fiscal: não há cálculo real de tributos nem
comunicação com a SEFAZ. O documento é gerado depois do commit da venda
e anexado apenas na coluna `fiscal_json`; totais e itens nunca mudam.

Chave de acesso (44 dígitos):
    cUF(2) + AAMM(4) + CNPJ(14) + mod(2) + serie(3) + nNF(9)
    + tpEmis(1) + cNF(8) + cDV(1)
onde cDV é o dígito verificador módulo 11 dos 43 dígitos anteriores.
"""

from __future__ import annotations

import io
import random
import re
import xml.etree.ElementTree as ET
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Optional, Union
from xml.sax.saxutils import escape

from reportlab.graphics.barcode import code128
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from reportlab.platypus.flowables import HRFlowable

from pdv.config import DB_PATH, DEFAULTS
from pdv.domain.models import DocumentoFiscal, Empresa, FormaPagamento, Venda
from pdv.infra.db import transaction
from pdv.infra.repositories import ParamsRepo, VendaRepo
from pdv.infra.logger import log_venda, log_system_event, log_file_operation

NAMESPACE_NFE = "http://www.portalfiscal.inf.br/nfe"
TIPOS = {"NFCe": "65", "NFe": "55"}
CNPJ_PADRAO = "00000000000000"
RAZAO_SOCIAL_PADRAO = "EMPRESA TESTE LTDA"

# Tabela de meios de pagamento (tPag)
_TPAG = {
    FormaPagamento.DINHEIRO: "01",
    FormaPagamento.CREDITO: "03",
    FormaPagamento.DEBITO: "04",
    FormaPagamento.PIX: "17",
}


def _digitos(valor: Optional[str]) -> str:
    return re.sub(r"\D", "", valor or "")


def digito_verificador(base: str) -> str:
    """Módulo 11 com pesos 2..9 da direita para a esquerda."""
    soma = 0
    peso = 2
    for d in reversed(base):
        soma += int(d) * peso
        peso = 2 if peso == 9 else peso + 1
    resto = soma % 11
    return "0" if resto < 2 else str(11 - resto)


def gerar_chave_acesso(
    cnpj: Optional[str],
    modelo: str,
    serie: Union[str, int],
    numero: Union[str, int],
    quando: datetime,
    uf: str = "35",
    codigo_numerico: Optional[str] = None,
) -> str:
    """Monta a chave de acesso de 44 dígitos."""
    if codigo_numerico is None:
        codigo_numerico = f"{random.randint(0, 99_999_999):08d}"
    base = (
        f"{_digitos(uf)[-2:]:0>2}"
        f"{quando:%y%m}"
        f"{_digitos(cnpj)[-14:]:0>14}"
        f"{_digitos(modelo)[-2:]:0>2}"
        f"{_digitos(str(serie))[-3:]:0>3}"
        f"{_digitos(str(numero))[-9:]:0>9}"
        "1"
        f"{_digitos(codigo_numerico)[-8:]:0>8}"
    )
    return base + digito_verificador(base)


def formatar_chave(chave: str) -> str:
    return " ".join(chave[i:i + 4] for i in range(0, len(chave), 4))


def _sub(parent: ET.Element, tag: str, text: Optional[str] = None, **attrs) -> ET.Element:
    el = ET.SubElement(parent, tag, attrs)
    if text is not None:
        el.text = text
    return el


def gerar_xml(
    tipo: str,
    empresa: Empresa,
    venda: Venda,
    chave: Optional[str] = None,
    serie: str = "1",
    numero: str = "1",
    quando: Optional[datetime] = None,
    uf: str = "35",
) -> str:
    """XML simplificado no leiaute da NF-e/NFC-e (mod 55/65)."""
    if tipo not in TIPOS:
        raise ValueError(f"Tipo de documento inválido: {tipo!r} (use NFCe ou NFe)")
    quando = quando or datetime.now()
    chave = chave or gerar_chave_acesso(empresa.cnpj, TIPOS[tipo], serie, numero, quando, uf)

    root = ET.Element(tipo, xmlns=NAMESPACE_NFE)
    inf = _sub(root, f"inf{tipo}", Id=f"{tipo}{chave}", versao="4.00")

    ide = _sub(inf, "ide")
    _sub(ide, "cUF", uf)
    _sub(ide, "natOp", "VENDA AO CONSUMIDOR" if tipo == "NFCe" else "VENDA DE MERCADORIA")
    _sub(ide, "mod", TIPOS[tipo])
    _sub(ide, "serie", str(serie))
    _sub(ide, "nNF", str(numero))
    _sub(ide, "dhEmi", quando.isoformat(timespec="seconds"))
    _sub(ide, "tpAmb", "2")  # homologação
    _sub(ide, "cDV", chave[-1])

    emit = _sub(inf, "emit")
    _sub(emit, "CNPJ", _digitos(empresa.cnpj) or CNPJ_PADRAO)
    _sub(emit, "xNome", empresa.razao_social or RAZAO_SOCIAL_PADRAO)
    if empresa.nome_loja:
        _sub(emit, "xFant", empresa.nome_loja)
    if empresa.endereco:
        _sub(_sub(emit, "enderEmit"), "xLgr", empresa.endereco)
    _sub(emit, "IE", empresa.ie or "")
    _sub(emit, "CRT", "1" if empresa.regime == "Simples Nacional" else "3")

    dest = _sub(inf, "dest")
    _sub(dest, "xNome", venda.cliente_nome or "CONSUMIDOR FINAL")

    for n, item in enumerate(venda.itens, start=1):
        det = _sub(inf, "det", nItem=str(n))
        prod = _sub(det, "prod")
        _sub(prod, "cProd", item.produto_id)
        _sub(prod, "xProd", item.produto_nome)
        _sub(prod, "uCom", "UN")
        _sub(prod, "qCom", f"{item.quantidade:.4f}")
        _sub(prod, "vUnCom", f"{item.preco_venda:.2f}")
        _sub(prod, "vProd", f"{item.preco_venda * item.quantidade:.2f}")
        icms = _sub(_sub(det, "imposto"), "ICMS")
        _sub(icms, "orig", "0")
        _sub(icms, "CST", "00")

    tot = _sub(_sub(inf, "total"), "ICMSTot")
    _sub(tot, "vProd", f"{venda.total:.2f}")
    _sub(tot, "vNF", f"{venda.total:.2f}")

    det_pag = _sub(_sub(inf, "pag"), "detPag")
    _sub(det_pag, "tPag", _TPAG.get(venda.forma_pagamento, "99"))
    _sub(det_pag, "vPag", f"{venda.total:.2f}")

    _sub(_sub(inf, "infAdic"), "infCpl", "DOCUMENTO EMITIDO EM AMBIENTE DE TESTE - SEM VALOR FISCAL")

    ET.indent(root)
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(root, encoding="unicode")


def simular_documento(
    venda: Venda,
    empresa: Empresa,
    tipo: str = "NFCe",
    serie: Optional[str] = None,
    numero: Optional[Union[str, int]] = None,
    uf: Optional[str] = None,
    quando: Optional[datetime] = None,
) -> DocumentoFiscal:
    serie = str(serie or DEFAULTS.serie_fiscal)
    numero = str(numero if numero is not None else random.randint(1, 99_999))
    uf = uf or DEFAULTS.uf_emitente
    quando = quando or datetime.now()
    if tipo not in TIPOS:
        raise ValueError(f"Tipo de documento inválido: {tipo!r} (use NFCe ou NFe)")

    chave = gerar_chave_acesso(empresa.cnpj, TIPOS[tipo], serie, numero, quando, uf)
    xml = gerar_xml(tipo, empresa, venda, chave=chave, serie=serie, numero=numero, quando=quando, uf=uf)
    return DocumentoFiscal(
        chave_acesso=chave,
        xml_conteudo=xml,
        serie=serie,
        numero=numero,
        emitido_em=quando.isoformat(timespec="seconds"),
    )


def _proximo_numero(conn) -> int:
    """Numeração sequencial guardada em params (chave `ultimo_numero_fiscal`)."""
    row = conn.execute("SELECT valor FROM params WHERE chave = 'ultimo_numero_fiscal'").fetchone()
    numero = int(row[0]) + 1 if row and str(row[0]).isdigit() else 1
    conn.execute(
        """
        INSERT INTO params (chave, valor) VALUES ('ultimo_numero_fiscal', ?)
        ON CONFLICT(chave) DO UPDATE SET valor=excluded.valor
        """,
        (str(numero),),
    )
    return numero


def emitir_documento_fiscal(venda_id: str, db_path: str = DB_PATH, tipo: str = "NFCe") -> Venda:
    """
    Gera e anexa o documento fiscal simulado de uma venda.

    Leitura, numeração e gravação rodam numa única transação: emissões
    simultâneas da mesma venda resultam num só documento e num só número.
    Se a venda já tiver documento, ela é devolvida sem alteração.

    Raises:
        KeyError: venda inexistente.
        ValueError: tipo de documento inválido.
    """
    params = ParamsRepo(db_path)
    empresa = params.get_empresa()
    repo = VendaRepo(db_path)
    with transaction(db_path) as conn:
        venda = repo.get(venda_id, conn=conn)
        if venda is None:
            raise KeyError(venda_id)
        if venda.fiscal is not None:
            log_system_event("fiscal_ja_emitido", {"venda_id": venda_id, "chave": venda.fiscal.chave_acesso})
            return venda

        documento = simular_documento(
            venda,
            empresa,
            tipo=tipo,
            serie=params.get("serie_fiscal", DEFAULTS.serie_fiscal, conn=conn),
            numero=_proximo_numero(conn),
            uf=params.get("uf_emitente", DEFAULTS.uf_emitente, conn=conn),
        )
        if not repo.anexar_fiscal(venda_id, documento, conn=conn):
            raise ValueError(f"Venda {venda_id} já tem documento fiscal")
    log_venda("fiscal_emitido", venda_id, venda.total, chave=documento.chave_acesso, numero=documento.numero)
    return replace(venda, fiscal=documento)


# -------------------------
# DANFE (PDF)
# -------------------------

def _marca_dagua(canvas, doc) -> None:
    largura, altura = A4
    canvas.saveState()
    canvas.setFillColor(colors.Color(0.85, 0.85, 0.85))
    canvas.setFont("Helvetica-Bold", 50)
    canvas.translate(largura / 2, altura / 2)
    canvas.rotate(45)
    canvas.drawCentredString(0, 0, "SEM VALOR FISCAL")
    canvas.drawCentredString(0, -60, "MODO DE TESTE")
    canvas.restoreState()


def _moeda(valor: float) -> str:
    return f"R$ {valor:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")


def gerar_pdf(
    venda: Venda,
    empresa: Empresa,
    documento: DocumentoFiscal,
    destino: Optional[Union[str, Path]] = None,
) -> bytes:
    """
    Renderiza um DANFE simplificado com marca d'água de teste.

    Args:
        destino: caminho do arquivo; se omitido, só devolve os bytes.

    Returns:
        Conteúdo do PDF.
    """
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=15 * mm,
        leftMargin=15 * mm,
        topMargin=15 * mm,
        bottomMargin=15 * mm,
        title=f"DANFE {documento.numero}",
    )
    styles = getSampleStyleSheet()
    titulo = ParagraphStyle("Titulo", parent=styles["Heading1"], alignment=1, fontSize=14)
    corpo = ParagraphStyle("Corpo", parent=styles["Normal"], fontSize=9, leading=11)
    mono = ParagraphStyle("Mono", parent=corpo, fontName="Courier", alignment=1)

    story = [
        Paragraph(escape(empresa.razao_social or RAZAO_SOCIAL_PADRAO), titulo),
        Paragraph(f"CNPJ: {escape(_digitos(empresa.cnpj) or CNPJ_PADRAO)}  IE: {escape(empresa.ie or '')}", corpo),
    ]
    if empresa.endereco:
        story.append(Paragraph(escape(empresa.endereco), corpo))
    story += [
        Spacer(1, 4 * mm),
        HRFlowable(width="100%", thickness=1, color=colors.black),
        Paragraph("DANFE - Documento Auxiliar da Nota Fiscal Eletrônica (simulação)", corpo),
        Paragraph(f"Série {escape(documento.serie)}  Nº {escape(documento.numero)}  Emissão: {escape(documento.emitido_em)}", corpo),
        Paragraph(f"Consumidor: {escape(venda.cliente_nome or 'CONSUMIDOR FINAL')}", corpo),
        Spacer(1, 4 * mm),
    ]

    data = [["#", "Produto", "Qtd", "Vl. unit.", "Vl. total"]]
    for n, item in enumerate(venda.itens, start=1):
        data.append([
            str(n),
            Paragraph(escape(item.produto_nome), corpo),
            f"{item.quantidade:g}",
            _moeda(item.preco_venda),
            _moeda(item.preco_venda * item.quantidade),
        ])
    data.append(["", "TOTAL", "", "", _moeda(venda.total)])
    tabela = Table(data, colWidths=[10 * mm, 85 * mm, 20 * mm, 30 * mm, 30 * mm])
    tabela.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("ALIGN", (2, 0), (-1, -1), "RIGHT"),
        ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
    ]))
    story += [
        tabela,
        Spacer(1, 4 * mm),
        Paragraph(f"Forma de pagamento: {venda.forma_pagamento.value}", corpo),
        Spacer(1, 6 * mm),
        Paragraph("Chave de acesso", corpo),
        Paragraph(formatar_chave(documento.chave_acesso), mono),
        Spacer(1, 2 * mm),
        code128.Code128(documento.chave_acesso, barHeight=12 * mm, barWidth=0.25 * mm),
    ]

    doc.build(story, onFirstPage=_marca_dagua, onLaterPages=_marca_dagua)
    pdf_bytes = buffer.getvalue()
    buffer.close()

    if destino is not None:
        Path(destino).write_bytes(pdf_bytes)
        log_file_operation("write_pdf", str(destino), rows_processed=len(venda.itens))
    return pdf_bytes
