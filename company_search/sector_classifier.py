"""
Sector inference from free text (keyword scan) or from NACE activity codes.
"""
import re
from typing import Dict, Iterable, List, Tuple

from .models import Sector, SECTOR_PRIORITY

# Ordered (sector, keywords). Keywords are matched as substrings of the
# lowercased, space-padded text; a leading/trailing space anchors a word edge.
TEXT_KEYWORDS: List[Tuple[Sector, List[str]]] = [
    (Sector.IT, [
        ' it ', 'software', 'informační', 'informacni', 'informatik', 'technolog',
        'digital', 'cloud', 'hosting', 'internet', ' web', 'aplikac', 'programov',
        'počítač', 'pocitac', 'computer', ' data', 'kyber', 'cyber', ' ai ',
    ]),
    (Sector.FINANCE, [
        'financ', 'bank', 'pojišť', 'pojist', 'insurance', 'invest', 'úvěr', 'uver',
        'leasing', 'účetn', 'ucetn', 'accounting', 'kapitál', 'capital', 'fintech',
        'směnárn', 'smenarn', 'hypot', 'daňov', 'danov',
    ]),
    (Sector.HEALTHCARE, [
        'zdrav', 'medic', 'lékař', 'lekar', 'klinik', 'clinic', 'nemocnic', 'hospital',
        'pharma', 'lékárn', 'lekarn', 'health', 'stomatolog', 'dental', 'ordinace',
        'rehabilit', 'fyzioterap',
    ]),
    (Sector.MANUFACTURING, [
        'výrob', 'vyrob', 'manufactur', 'továrn', 'tovarn', 'factory', 'strojír',
        'strojir', 'průmysl', 'prumysl', 'industr', 'production', 'slévár', 'slevar',
        'engineering', 'kovovýr', 'kovovyr',
    ]),
    (Sector.RETAIL, [
        'obchod', 'prodej', 'shop', 'store', 'retail', 'maloobchod', 'velkoobchod',
        'market', 'prodejn', 'supermarket', 'trade',
    ]),
]

# NACE division ranges (inclusive) and the weight of one matching code.
CODE_RANGES: List[Tuple[Sector, int, int, int]] = [
    (Sector.IT, 61, 63, 3),
    (Sector.FINANCE, 64, 66, 3),
    (Sector.HEALTHCARE, 86, 88, 3),
    (Sector.MANUFACTURING, 10, 33, 2),
    (Sector.RETAIL, 45, 47, 1),
]


def _pick(scores: Dict[Sector, int]) -> Sector:
    best = Sector.OTHER
    best_score = 0
    # Strictly-greater comparison in priority order keeps the earlier sector on ties.
    for sector in SECTOR_PRIORITY:
        score = scores.get(sector, 0)
        if score > best_score:
            best, best_score = sector, score
    return best


class SectorClassifier:
    """Pure, deterministic sector inference."""

    def __init__(self, keywords=None, code_ranges=None):
        self.keywords = keywords or TEXT_KEYWORDS
        self.code_ranges = code_ranges or CODE_RANGES

    def score_text(self, text: str) -> Dict[Sector, int]:
        haystack = f" {' '.join((text or '').lower().split())} "
        scores: Dict[Sector, int] = {}
        for sector, keywords in self.keywords:
            for keyword in keywords:
                if keyword in haystack:
                    scores[sector] = scores.get(sector, 0) + 1
        return scores

    def classify_text(self, *parts: str) -> Sector:
        """Classify joined free-text parts (typically name + description)."""
        text = ' '.join(p for p in parts if p)
        return _pick(self.score_text(text))

    def score_codes(self, codes: Iterable) -> Dict[Sector, int]:
        scores: Dict[Sector, int] = {}
        for code in codes or []:
            digits = re.sub(r'[^0-9]', '', str(code))
            if len(digits) < 2:
                continue
            division = int(digits[:2])
            for sector, low, high, weight in self.code_ranges:
                if low <= division <= high:
                    scores[sector] = scores.get(sector, 0) + weight
                    break
        return scores

    def classify_codes(self, codes: Iterable) -> Sector:
        return _pick(self.score_codes(codes))


classifier = SectorClassifier()
