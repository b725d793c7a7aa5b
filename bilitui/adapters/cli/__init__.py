"""
Interface ligne de commande de bilitui (Typer + Rich).
"""
