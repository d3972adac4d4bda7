"""Typed failures of a freight calculation.

Each error carries the HTTP status it maps to and a message the UI shows
verbatim, so handlers in ``main`` only need to serialise ``{"error": ...}``.
"""


class CalculationError(Exception):
    status_code = 400
    default_message = "Erro ao calcular frete"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(CalculationError):
    status_code = 400
    default_message = "Dados inválidos para o cálculo do frete"


class RateNotFound(CalculationError):
    status_code = 422
    default_message = "Não é possível calcular o frete para esta combinação de carga e eixos"

    def __init__(self, cargo_type=None, axles=None, message: str | None = None):
        self.cargo_type = cargo_type
        self.axles = axles
        if message is None and cargo_type is not None:
            message = (
                f"Não é possível calcular o frete para carga {cargo_type} "
                f"com {axles} eixos: combinação sem piso mínimo na tabela ANTT"
            )
        super().__init__(message)


class TableNotFound(RateNotFound):
    default_message = "Não há tabela ANTT para a resolução e categoria de transporte informadas"

    def __init__(self, resolution, transport_category):
        self.resolution = resolution
        self.transport_category = transport_category
        super().__init__(
            message=f"Não há tabela ANTT carregada para a resolução {resolution} ({transport_category.table})"
        )


class RouteNotResolved(CalculationError):
    status_code = 502
    default_message = "Não foi possível determinar a rota entre as cidades informadas"


class RateTableError(Exception):
    """Raised when the reference rate table fails validation at load time."""
