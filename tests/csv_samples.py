"""
Builders for inventory CSV test data.
"""

HEADER = "interne Artikelnummer;Preis;Zustand;Titel;Teilemarke, Teilenummer;Pfand;Versandklasse;Lieferzeit"
HEADERS = HEADER.split(";")


def make_row(number, price="10,50", condition="1", title="Bremsscheibe", brand="BOSCH 0986479",
             deposit="0", shipping="1", delivery="2"):
    return ";".join([number, price, condition, title, brand, deposit, shipping, delivery])


def make_csv(rows, header=HEADER):
    return "\n".join([header] + list(rows)) + "\n"


def mixed_rows(total, invalid):
    """total rows, the first `invalid` of which have a non-numeric price."""
    rows = []
    for i in range(total):
        price = "abc" if i < invalid else f"{i % 90 + 10},99"
        rows.append(make_row(f"ART-{i:05d}", price=price, condition=str(i % 6)))
    return rows
