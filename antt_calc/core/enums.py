from enum import Enum


class CargoType(str, Enum):
    GRANEL_SOLIDO = "GRANEL_SOLIDO"
    GRANEL_LIQUIDO = "GRANEL_LIQUIDO"
    FRIGORIFICADA = "FRIGORIFICADA"
    CONTEINERIZADA = "CONTEINERIZADA"
    CARGA_GERAL = "CARGA_GERAL"
    NEOGRANEL = "NEOGRANEL"
    PERIGOSA_GRANEL_SOLIDO = "PERIGOSA_GRANEL_SOLIDO"
    PERIGOSA_GRANEL_LIQUIDO = "PERIGOSA_GRANEL_LIQUIDO"
    PERIGOSA_FRIGORIFICADA = "PERIGOSA_FRIGORIFICADA"
    PERIGOSA_CONTEINERIZADA = "PERIGOSA_CONTEINERIZADA"
    PERIGOSA_CARGA_GERAL = "PERIGOSA_CARGA_GERAL"
    GRANEL_PRESSURIZADA = "GRANEL_PRESSURIZADA"

    def __str__(self):
        return self.value

    @property
    def label(self) -> str:
        return CARGO_TYPE_LABELS[self]


CARGO_TYPE_LABELS = {
    CargoType.GRANEL_SOLIDO: "Granel sólido",
    CargoType.GRANEL_LIQUIDO: "Granel líquido",
    CargoType.FRIGORIFICADA: "Frigorificada ou Aquecida",
    CargoType.CONTEINERIZADA: "Conteinerizada",
    CargoType.CARGA_GERAL: "Carga Geral",
    CargoType.NEOGRANEL: "Neogranel",
    CargoType.PERIGOSA_GRANEL_SOLIDO: "Perigosa (granel sólido)",
    CargoType.PERIGOSA_GRANEL_LIQUIDO: "Perigosa (granel líquido)",
    CargoType.PERIGOSA_FRIGORIFICADA: "Perigosa (frigorificada ou aquecida)",
    CargoType.PERIGOSA_CONTEINERIZADA: "Perigosa (conteinerizada)",
    CargoType.PERIGOSA_CARGA_GERAL: "Perigosa (carga geral)",
    CargoType.GRANEL_PRESSURIZADA: "Carga Granel Pressurizada",
}

# Axle classes defined by the regulator; 8 axles is not a class.
AXLE_CLASSES = (2, 3, 4, 5, 6, 7, 9)


class AdjustmentName(str, Enum):
    COMPOSITION = "composition"
    HIGH_PERFORMANCE = "high_performance"
    EMPTY_RETURN = "empty_return"

    def __str__(self):
        return self.value


class TransportCategory(str, Enum):
    """Contracting mode; each one has its own ANTT table (A to D)."""
    CARGA_LOTACAO = "CARGA_LOTACAO"
    VEICULO_AUTOMOTOR = "VEICULO_AUTOMOTOR"
    ALTO_DESEMPENHO = "ALTO_DESEMPENHO"
    VEICULO_ALTO_DESEMPENHO = "VEICULO_ALTO_DESEMPENHO"

    def __str__(self):
        return self.value

    @property
    def table(self) -> str:
        return TRANSPORT_CATEGORY_TABLES[self]


TRANSPORT_CATEGORY_TABLES = {
    TransportCategory.CARGA_LOTACAO: "Tabela A",
    TransportCategory.VEICULO_AUTOMOTOR: "Tabela B",
    TransportCategory.ALTO_DESEMPENHO: "Tabela C",
    TransportCategory.VEICULO_ALTO_DESEMPENHO: "Tabela D",
}
