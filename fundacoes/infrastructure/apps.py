from django.apps import AppConfig


class InfrastructureConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'fundacoes.infrastructure'
    label = 'infrastructure' # Define um label para evitar conflitos de nomes
    verbose_name = 'Persistência e Integrações'

    def ready(self):
        # Conecta os sinais que alimentam os streams SSE
        from . import eventos
        eventos.conectar_sinais()
