import re
import unicodedata
from typing import NamedTuple

_UF_RE = re.compile(r"^[A-Za-z]{2}$")


class CityRef(NamedTuple):
    name: str
    uf: str

    @property
    def label(self) -> str:
        return f"{self.name}-{self.uf}"

    @property
    def key(self) -> str:
        """Accent, case and whitespace insensitive identity of the city."""
        folded = unicodedata.normalize("NFKD", self.name)
        folded = "".join(c for c in folded if not unicodedata.combining(c))
        return f"{' '.join(folded.casefold().split())}-{self.uf}"


def parse_city(value: str) -> CityRef:
    """Split a ``"<city>-<UF>"`` identifier on its last hyphen.

    City names may contain hyphens themselves (``Embu-Guaçu-SP``), the UF
    never does.
    """
    if not isinstance(value, str):
        raise ValueError("city must be a string in the form '<cidade>-<UF>'")
    name, sep, uf = value.strip().rpartition("-")
    name = " ".join(name.split())
    uf = uf.strip()
    if not sep or not name or not _UF_RE.match(uf):
        raise ValueError(f"'{value}' is not in the form '<cidade>-<UF>'")
    return CityRef(name=name, uf=uf.upper())
