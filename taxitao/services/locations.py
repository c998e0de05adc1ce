"""
Hub and spoke map: smaller towns point at the major town drivers price
routes to. A ride to a spoke can be served by a driver going to its hub.
"""

LOCATION_HUBS: dict[str, str] = {
    # Machakos County
    "masii": "Machakos Town",
    "wamunyu": "Machakos Town",
    "kathiani": "Machakos Town",
    "mitaboni": "Machakos Town",
    "kangundo": "Machakos Town",
    "tala": "Machakos Town",
    "mlolongo": "Machakos Town",
    "athi river": "Machakos Town",
    "syokimau": "Machakos Town",

    # Makueni County
    "wote": "Makueni",
    "kibwezi": "Makueni",
    "mtito andei": "Makueni",
    "emali": "Makueni",
    "sultan hamud": "Makueni",

    # Kitui County
    "kitui town": "Kitui",
    "mwingi": "Kitui",
    "mutomo": "Kitui",
    "kwa vonza": "Kitui",

    # Kiambu County
    "thika": "Kiambu",
    "ruiru": "Kiambu",
    "juja": "Kiambu",
    "kikuyu": "Kiambu",
    "limuru": "Kiambu",
    "kiambu town": "Kiambu",

    # Kajiado County
    "ngong": "Kajiado",
    "kitengela": "Kajiado",
    "ongata rongai": "Kajiado",
    "kiserian": "Kajiado",
    "namanga": "Kajiado",

    # Mombasa & Coast
    "mombasa cbd": "Mombasa",
    "nyali": "Mombasa",
    "bamburi": "Mombasa",
    "mtwapa": "Mombasa",
    "diani": "Mombasa",
    "ukunda": "Mombasa",
    "malindi": "Mombasa",
    "kilifi town": "Mombasa",

    # Nairobi environs
    "westlands": "Nairobi",
    "karen": "Nairobi",
    "kilimani": "Nairobi",
    "kasarani": "Nairobi",
    "embakasi": "Nairobi",
    "langata": "Nairobi",
    "nairobi cbd": "Nairobi",
}


def get_nearby_hub(location: str) -> str | None:
    return LOCATION_HUBS.get(location.strip().lower())
