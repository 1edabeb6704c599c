# -*- coding: utf-8 -*-
"""
Backend de gerenciamento de academias: turmas, reservas, inscrições e pagamentos.
"""

__version__ = "1.0.0"
