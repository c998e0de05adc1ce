from taxitao.services.mpesa import can_submit, build_mpesa_details
from taxitao.services.contact import normalize_whatsapp, tel_link, whatsapp_link, contact_links


def test_can_submit_requires_type_fields():
    assert can_submit("till", {"tillNumber": "123456"})
    assert not can_submit("till", {"tillNumber": "   "})
    assert not can_submit("paybill", {"paybillNumber": "400200"})
    assert can_submit("paybill", {"paybillNumber": "400200", "accountNumber": "A1"})
    assert can_submit("send_money", {"phoneNumber": "0712345678"})
    assert not can_submit("cash", {"tillNumber": "123"})


def test_build_mpesa_details():
    details = build_mpesa_details("paybill", {
        "paybillNumber": " 400200 ",
        "accountNumber": "A1",
        "accountName": "John Taxi",
        "tillNumber": "ignored",
    })
    assert details == {
        "type": "paybill",
        "paybillNumber": "400200",
        "accountNumber": "A1",
        "accountName": "John Taxi",
    }


def test_whatsapp_normalization():
    assert normalize_whatsapp("0712 345 678") == "254712345678"
    assert normalize_whatsapp("+254 712-345-678") == "254712345678"


def test_links():
    assert tel_link("+254 712 345 678") == "tel:+254712345678"
    assert whatsapp_link("0712345678", "Hi there") == "https://wa.me/254712345678?text=Hi%20there"
    links = contact_links("0712345678", whatsapp="0799000111")
    assert links["whatsapp"] == "https://wa.me/254799000111"
