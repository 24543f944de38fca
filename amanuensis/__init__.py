"""Leitura de logs do Clan Lord e estatisticas por personagem."""

__version__ = "0.4.0"
