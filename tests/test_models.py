import json

import pytest

from conciliador.models import KioscoPayment, ReportPaymentResponse, ReportStore

SAMPLE = {
    "Merchantid": "M-1",
    "Fecha_Transaccion": "20240101",
    "Hora_Transaccion": "10:20:30.000",
    "Estado": "APROBADA",
    "Numero_Lote": "7",
    "Face_Value": "12.50",
    "Id_Grupo_Tarjeta": "VISA",
    "Id_Adquirente": "A1",
    "numero_tarjeta_mask": "XXXX-EXAMPLE",
    "Numero_Autorizacion": "AUTH-1",
    "Numero_Referencia": "REF-1",
    "Tipo_Transaccion": "VENTA",
    "Resultado_externo": "OK",
    "Tipo_Switch": "3",
    "Origen_Transaccion": "4",
}


def test_kiosco_round_trip():
    payment = KioscoPayment.from_json(SAMPLE)
    assert payment.merchant_id == "M-1"
    assert payment.numero_tarjeta_mask == "XXXX-EXAMPLE"
    assert payment.to_json() == SAMPLE


def test_kiosco_from_text_and_missing_fields():
    payment = KioscoPayment.from_json(json.dumps({"Estado": "X", "Numero_Lote": None}))
    assert payment.estado == "X"
    assert payment.numero_lote == ""
    assert payment.merchant_id == ""


def test_kiosco_keys_match_ignoring_case():
    payment = KioscoPayment.from_json({"merchantid": "abc", "ESTADO": "ok"})
    assert payment.merchant_id == "abc"
    assert payment.estado == "ok"


def test_kiosco_rejects_non_string_value():
    with pytest.raises(ValueError):
        KioscoPayment.from_json({"Numero_Lote": 5})


def test_kiosco_rejects_non_object():
    with pytest.raises(ValueError):
        KioscoPayment.from_json([1, 2])


def test_report_response_parses_payments():
    doc = {
        "totalData": 2,
        "pages": 1,
        "currentPage": 1,
        "data": [
            {"referenceId": "r1", "amount": "5", "store": {"id": 9, "name": "Centro"}},
            {"referenceId": "r2", "transferNumber": "t2"},
        ],
    }
    response = ReportPaymentResponse.from_json(doc)
    assert response.total_data == 2
    assert [p.reference_id for p in response.data] == ["r1", "r2"]
    assert response.data[0].store == ReportStore(id=9, name="Centro")
    assert response.data[1].store == ReportStore()
    assert response.data[1].transfer_number == "t2"


def test_report_response_null_data():
    response = ReportPaymentResponse.from_json('{"totalData": 0, "data": null}')
    assert response.data is None
    assert response.pages == 0


def test_report_response_rejects_fractional_integer():
    with pytest.raises(ValueError):
        ReportPaymentResponse.from_json({"pages": 1.5})