"""Static publisher suggestions used when the model call is unavailable or unusable."""

from __future__ import annotations

from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class Publisher:
    url: str
    name: str
    reason: str

    def as_dict(self) -> dict[str, str]:
        return asdict(self)


FALLBACK_DATA: dict[str, dict[str, list[Publisher]]] = {
    "Germany": {
        "Sports": [
            Publisher("https://www.kicker.de", "Kicker", "Leading German football/sports magazine and portal"),
            Publisher("https://www.sport1.de", "Sport1", "Major German multi-sport news platform"),
            Publisher("https://www.sportschau.de", "Sportschau", "ARD public broadcaster sports section"),
        ],
        "Finance": [
            Publisher("https://www.handelsblatt.com", "Handelsblatt", "Leading German business and finance newspaper"),
            Publisher("https://www.finanzen.net", "Finanzen.net", "Major German financial news and market data portal"),
            Publisher("https://www.boerse-online.de", "Börse Online", "Established German stock market and investment portal"),
        ],
        "News": [
            Publisher("https://www.spiegel.de", "Der Spiegel", "Germany's most influential news magazine"),
            Publisher("https://www.focus.de", "Focus Online", "Major German news magazine with broad coverage"),
            Publisher("https://www.zeit.de", "Die Zeit", "Renowned German weekly newspaper"),
        ],
        "Tech": [
            Publisher("https://www.heise.de", "Heise Online", "Leading German technology news portal"),
            Publisher("https://www.chip.de", "CHIP", "Major German tech magazine and review site"),
            Publisher("https://www.golem.de", "Golem.de", "German IT news and technology portal"),
        ],
        "Automotive": [
            Publisher("https://www.auto-motor-und-sport.de", "Auto Motor und Sport", "Leading German automotive magazine"),
            Publisher("https://www.autobild.de", "Auto Bild", "Germany's largest automotive publication"),
            Publisher("https://www.mobile.de", "Mobile.de", "Major German automotive marketplace and news"),
        ],
        "Lifestyle": [
            Publisher("https://www.brigitte.de", "Brigitte", "Major German lifestyle and women's magazine"),
            Publisher("https://www.stern.de", "Stern", "German lifestyle and news magazine"),
            Publisher("https://www.gala.de", "Gala", "German celebrity and lifestyle magazine"),
        ],
        "Cooking": [
            Publisher("https://www.chefkoch.de", "Chefkoch", "Germany's largest cooking community and recipe platform"),
            Publisher("https://www.lecker.de", "Lecker", "Popular German food and recipe magazine"),
            Publisher("https://www.essen-und-trinken.de", "Essen & Trinken", "Premium German food magazine"),
        ],
        "Travel": [
            Publisher("https://www.geo.de", "GEO", "Leading German travel and geography magazine"),
            Publisher("https://www.travelbook.de", "Travelbook", "German digital travel magazine by Axel Springer"),
            Publisher("https://www.urlaubsguru.de", "Urlaubsguru", "Major German travel deals and inspiration portal"),
        ],
    },
    "Austria": {
        "News": [
            Publisher("https://www.derstandard.at", "Der Standard", "Leading Austrian quality newspaper"),
            Publisher("https://www.krone.at", "Kronen Zeitung", "Austria's highest-circulation daily newspaper"),
            Publisher("https://www.orf.at", "ORF", "Austrian public broadcaster"),
        ],
        "Sports": [
            Publisher("https://www.laola1.at", "LAOLA1", "Leading Austrian sports portal"),
            Publisher("https://sport.orf.at", "ORF Sport", "Austrian public broadcaster sports section"),
            Publisher("https://www.krone.at/sport", "Krone Sport", "Kronen Zeitung sports section"),
        ],
    },
    "Switzerland": {
        "News": [
            Publisher("https://www.20min.ch", "20 Minuten", "Switzerland's most-read newspaper"),
            Publisher("https://www.blick.ch", "Blick", "Major Swiss German-language tabloid"),
            Publisher("https://www.nzz.ch", "NZZ", "Renowned Swiss quality newspaper"),
        ],
        "Sports": [
            Publisher("https://www.blick.ch/sport/", "Blick Sport", "Major Swiss sports coverage"),
            Publisher("https://www.20min.ch/sport", "20 Minuten Sport", "Swiss sports news"),
            Publisher("https://www.watson.ch/sport", "Watson Sport", "Swiss digital media sports section"),
        ],
    },
    "United Kingdom": {
        "News": [
            Publisher("https://www.bbc.co.uk/news", "BBC News", "UK's most trusted news source"),
            Publisher("https://www.theguardian.com", "The Guardian", "Major UK broadsheet newspaper"),
            Publisher("https://www.dailymail.co.uk", "Daily Mail", "UK's highest-traffic newspaper website"),
        ],
        "Sports": [
            Publisher("https://www.bbc.co.uk/sport", "BBC Sport", "UK's most popular sports platform"),
            Publisher("https://www.skysports.com", "Sky Sports", "Leading UK sports broadcaster"),
            Publisher("https://www.theguardian.com/sport", "Guardian Sport", "Quality UK sports journalism"),
        ],
        "Tech": [
            Publisher("https://www.theregister.com", "The Register", "Popular UK tech news site"),
            Publisher("https://www.techradar.com", "TechRadar", "Major UK technology reviews and news"),
            Publisher("https://www.wired.co.uk", "Wired UK", "UK edition of leading tech magazine"),
        ],
        "Finance": [
            Publisher("https://www.ft.com", "Financial Times", "World-leading financial newspaper, based in UK"),
            Publisher("https://www.thisismoney.co.uk", "This is Money", "Daily Mail's personal finance section"),
            Publisher("https://www.cityam.com", "City A.M.", "London-based free financial newspaper"),
        ],
    },
    "France": {
        "News": [
            Publisher("https://www.lemonde.fr", "Le Monde", "France's most prestigious newspaper"),
            Publisher("https://www.lefigaro.fr", "Le Figaro", "Major French daily newspaper"),
            Publisher("https://www.20minutes.fr", "20 Minutes", "Most-read free newspaper in France"),
        ],
        "Sports": [
            Publisher("https://www.lequipe.fr", "L'Equipe", "France's leading sports daily"),
            Publisher("https://rmcsport.bfmtv.com", "RMC Sport", "Major French sports news platform"),
            Publisher("https://www.eurosport.fr", "Eurosport France", "Multi-sport coverage in France"),
        ],
    },
    "Italy": {
        "News": [
            Publisher("https://www.repubblica.it", "La Repubblica", "Italy's most-read online newspaper"),
            Publisher("https://www.corriere.it", "Corriere della Sera", "Italy's oldest and most prestigious daily"),
            Publisher("https://www.ansa.it", "ANSA", "Italian national news agency"),
        ],
        "Sports": [
            Publisher("https://www.gazzetta.it", "La Gazzetta dello Sport", "Italy's leading sports daily"),
            Publisher("https://www.corrieredellosport.it", "Corriere dello Sport", "Major Italian sports newspaper"),
            Publisher("https://sport.sky.it", "Sky Sport Italia", "Leading Italian sports broadcaster"),
        ],
    },
    "Spain": {
        "News": [
            Publisher("https://elpais.com", "El País", "Spain's largest newspaper"),
            Publisher("https://www.elmundo.es", "El Mundo", "Major Spanish daily newspaper"),
            Publisher("https://www.20minutos.es", "20 Minutos", "Most-read free newspaper in Spain"),
        ],
        "Sports": [
            Publisher("https://www.marca.com", "Marca", "Spain's leading sports newspaper"),
            Publisher("https://as.com", "AS", "Major Spanish sports daily"),
            Publisher("https://www.mundodeportivo.com", "Mundo Deportivo", "Catalan sports newspaper"),
        ],
    },
    "Netherlands": {
        "News": [
            Publisher("https://www.telegraaf.nl", "De Telegraaf", "Netherlands' highest-circulation daily"),
            Publisher("https://www.nu.nl", "NU.nl", "Most-visited Dutch news website"),
            Publisher("https://www.volkskrant.nl", "De Volkskrant", "Major Dutch quality newspaper"),
        ],
        "Sports": [
            Publisher("https://www.vi.nl", "Voetbal International", "Netherlands' leading football magazine"),
            Publisher("https://nos.nl/sport", "NOS Sport", "Dutch public broadcaster sports section"),
            Publisher("https://www.ad.nl/sport", "AD Sport", "Algemeen Dagblad sports section"),
        ],
    },
    "Poland": {
        "News": [
            Publisher("https://www.wp.pl", "Wirtualna Polska", "Poland's largest web portal"),
            Publisher("https://www.onet.pl", "Onet", "Major Polish internet portal"),
            Publisher("https://www.gazeta.pl", "Gazeta.pl", "Leading Polish online news portal"),
        ],
        "Sports": [
            Publisher("https://www.sport.pl", "Sport.pl", "Major Polish sports portal"),
            Publisher("https://www.przegladysportowy.pl", "Przegląd Sportowy", "Poland's oldest sports newspaper"),
            Publisher("https://sportowefakty.wp.pl", "Sportowe Fakty", "WP sports news section"),
        ],
    },
}

DEFAULT_COUNTRY = "Germany"
DEFAULT_TOPIC = "News"


def fallback_publishers(topic: str, country: str) -> list[Publisher]:
    """Exact topic, then case-insensitive topic, then the country's News, then its first topic."""

    country_data = FALLBACK_DATA.get(country)
    if not country_data:
        return list(FALLBACK_DATA[DEFAULT_COUNTRY][DEFAULT_TOPIC])
    if topic in country_data:
        return list(country_data[topic])
    wanted = (topic or "").lower()
    for key, publishers in country_data.items():
        if key.lower() == wanted:
            return list(publishers)
    if DEFAULT_TOPIC in country_data:
        return list(country_data[DEFAULT_TOPIC])
    return list(next(iter(country_data.values())))


__all__ = ["FALLBACK_DATA", "Publisher", "fallback_publishers"]
