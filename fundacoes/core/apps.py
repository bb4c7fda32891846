# fundacoes/core/apps.py

from django.apps import AppConfig

class CoreConfig(AppConfig):
    # O nome completo do path da aplicação
    name = 'fundacoes.core'
    label = 'core'
    verbose_name = 'Camada de Entidades e Regras de Negócio (Core)'

    # Sem modelos aqui: a persistência fica na Infrastructure.
    default_auto_field = 'django.db.models.BigAutoField'
