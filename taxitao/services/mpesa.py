PAYMENT_TYPES = ("till", "paybill", "send_money")

REQUIRED_FIELDS = {
    "till": ("tillNumber",),
    "paybill": ("paybillNumber", "accountNumber"),
    "send_money": ("phoneNumber",),
}


def _filled(value) -> bool:
    return bool(value and str(value).strip())


def can_submit(payment_type: str, fields: dict) -> bool:
    required = REQUIRED_FIELDS.get(payment_type)
    if not required:
        return False
    return all(_filled(fields.get(name)) for name in required)


def build_mpesa_details(payment_type: str, fields: dict) -> dict:
    details = {"type": payment_type}
    for name in REQUIRED_FIELDS[payment_type]:
        details[name] = str(fields[name]).strip()
    if fields.get("accountName"):
        details["accountName"] = fields["accountName"].strip()
    return details
