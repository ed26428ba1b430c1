"""Reference word lists for Dutch government text.

Plain data only.  The rule table in :mod:`ioukit.ner.rules` compiles
these into patterns, and the graph and compliance modules reuse the
municipality → province table and the public-body list.
"""

PROVINCES = (
    "Drenthe",
    "Flevoland",
    "Friesland",
    "Gelderland",
    "Groningen",
    "Limburg",
    "Noord-Brabant",
    "Noord-Holland",
    "Overijssel",
    "Utrecht",
    "Zeeland",
    "Zuid-Holland",
)

# Municipality -> province it lies in.
MUNICIPALITY_PROVINCE = {
    "Almere": "Flevoland",
    "Lelystad": "Flevoland",
    "Dronten": "Flevoland",
    "Zeewolde": "Flevoland",
    "Urk": "Flevoland",
    "Noordoostpolder": "Flevoland",
    "Amsterdam": "Noord-Holland",
    "Haarlem": "Noord-Holland",
    "Rotterdam": "Zuid-Holland",
    "Den Haag": "Zuid-Holland",
    "Leiden": "Zuid-Holland",
    "Delft": "Zuid-Holland",
    "Utrecht": "Utrecht",
    "Amersfoort": "Utrecht",
    "Eindhoven": "Noord-Brabant",
    "Tilburg": "Noord-Brabant",
    "Breda": "Noord-Brabant",
    "Groningen": "Groningen",
    "Almelo": "Overijssel",
    "Enschede": "Overijssel",
    "Zwolle": "Overijssel",
    "Arnhem": "Gelderland",
    "Nijmegen": "Gelderland",
    "Maastricht": "Limburg",
    "Leeuwarden": "Friesland",
    "Assen": "Drenthe",
    "Middelburg": "Zeeland",
}

# Ministry name or abbreviation -> full ministry name.
MINISTRIES = {
    "Binnenlandse Zaken en Koninkrijksrelaties": "Binnenlandse Zaken en Koninkrijksrelaties",
    "Binnenlandse Zaken": "Binnenlandse Zaken en Koninkrijksrelaties",
    "BZK": "Binnenlandse Zaken en Koninkrijksrelaties",
    "Financiën": "Financiën",
    "Infrastructuur en Waterstaat": "Infrastructuur en Waterstaat",
    "I&W": "Infrastructuur en Waterstaat",
    "Economische Zaken en Klimaat": "Economische Zaken en Klimaat",
    "Economische Zaken": "Economische Zaken en Klimaat",
    "EZK": "Economische Zaken en Klimaat",
    "Justitie en Veiligheid": "Justitie en Veiligheid",
    "J&V": "Justitie en Veiligheid",
    "Onderwijs, Cultuur en Wetenschap": "Onderwijs, Cultuur en Wetenschap",
    "OCW": "Onderwijs, Cultuur en Wetenschap",
    "Volksgezondheid, Welzijn en Sport": "Volksgezondheid, Welzijn en Sport",
    "VWS": "Volksgezondheid, Welzijn en Sport",
    "Sociale Zaken en Werkgelegenheid": "Sociale Zaken en Werkgelegenheid",
    "SZW": "Sociale Zaken en Werkgelegenheid",
    "Buitenlandse Zaken": "Buitenlandse Zaken",
    "BZ": "Buitenlandse Zaken",
    "Defensie": "Defensie",
    "Landbouw, Natuur en Voedselkwaliteit": "Landbouw, Natuur en Voedselkwaliteit",
    "LNV": "Landbouw, Natuur en Voedselkwaliteit",
}

# Public bodies known by name, surface -> canonical.
PUBLIC_BODIES = {
    "Rijkswaterstaat": "Rijkswaterstaat",
    "Belastingdienst": "Belastingdienst",
    "Kadaster": "Kadaster",
    "Nationaal Archief": "Nationaal Archief",
    "Autoriteit Persoonsgegevens": "Autoriteit Persoonsgegevens",
    "UWV": "UWV",
    "DUO": "Dienst Uitvoering Onderwijs",
    "Dienst Uitvoering Onderwijs": "Dienst Uitvoering Onderwijs",
    "CBS": "Centraal Bureau voor de Statistiek",
    "Centraal Bureau voor de Statistiek": "Centraal Bureau voor de Statistiek",
    "Raad van State": "Raad van State",
    "Tweede Kamer": "Tweede Kamer der Staten-Generaal",
    "Eerste Kamer": "Eerste Kamer der Staten-Generaal",
    "Gedeputeerde Staten": "Gedeputeerde Staten",
    "Provinciale Staten": "Provinciale Staten",
    "RVO": "Rijksdienst voor Ondernemend Nederland",
    "Rijksdienst voor Ondernemend Nederland": "Rijksdienst voor Ondernemend Nederland",
    "Inspectie Leefomgeving en Transport": "Inspectie Leefomgeving en Transport",
    "Algemene Rekenkamer": "Algemene Rekenkamer",
}

# Law surface forms -> canonical citation.
LAWS = {
    "Wet open overheid": "Wet open overheid (Woo)",
    "Woo": "Wet open overheid (Woo)",
    "WOO": "Wet open overheid (Woo)",
    "Wet openbaarheid van bestuur": "Wet openbaarheid van bestuur (Wob)",
    "Wob": "Wet openbaarheid van bestuur (Wob)",
    "Algemene verordening gegevensbescherming": "Algemene verordening gegevensbescherming (AVG)",
    "AVG": "Algemene verordening gegevensbescherming (AVG)",
    "GDPR": "Algemene verordening gegevensbescherming (AVG)",
    "Archiefwet 1995": "Archiefwet 1995",
    "Archiefwet": "Archiefwet 1995",
    "Omgevingswet": "Omgevingswet",
    "Algemene wet bestuursrecht": "Algemene wet bestuursrecht (Awb)",
    "Awb": "Algemene wet bestuursrecht (Awb)",
    "Gemeentewet": "Gemeentewet",
    "Provinciewet": "Provinciewet",
    "Waterschapswet": "Waterschapswet",
}

# Place names not covered by provinces and municipalities.
OTHER_PLACES = (
    "Nederland",
    "Randstad",
    "IJsselmeer",
    "Markermeer",
    "Waddenzee",
    "Oostvaardersplassen",
    "Veluwe",
)

GIVEN_NAMES = (
    "Anna", "Ahmed", "Bram", "Daan", "Emma", "Eva", "Fatima", "Femke",
    "Fleur", "Hanna", "Henk", "Hugo", "Ingrid", "Jan", "Johan", "Julia",
    "Kees", "Lisa", "Lucas", "Maria", "Marieke", "Mohammed", "Noah",
    "Pieter", "Piet", "Ruud", "Sanne", "Sem", "Sophie", "Thomas", "Willem",
)

# Dutch surname particles, longest first.
SURNAME_PARTICLES = (
    "van der", "van den", "van de", "van", "de", "den", "der", "ter", "ten", "te",
)

POLICY_TERMS = (
    "mobiliteit",
    "duurzaamheid",
    "energietransitie",
    "circulaire economie",
    "klimaatadaptatie",
    "woningbouw",
    "stikstof",
    "biodiversiteit",
    "ruimtelijke ordening",
    "omgevingsvisie",
    "windenergie",
)


def place_names() -> list[str]:
    names = set(PROVINCES) | set(MUNICIPALITY_PROVINCE) | set(OTHER_PLACES)
    return sorted(names)
