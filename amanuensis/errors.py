"""Hierarquia de erros do amanuensis."""


class AmanuensisError(Exception):
    """Base de todos os erros previstos da aplicacao."""


class DataError(AmanuensisError):
    """Pedido invalido: personagem inexistente, contador desconhecido, pasta invalida."""


class MergeError(DataError):
    pass


class ReferenceDataError(AmanuensisError):
    """Tabela de referencia (criaturas/treinadores) malformada."""
