# fundacoes/presentation/views_stream.py
"""
Streams SSE (text/event-stream) alimentados pela central de eventos.

São views Django simples: o DRF não participa do streaming, então os erros
do Core são convertidos aqui mesmo no envelope {error, detail}.
"""
import logging

from django.conf import settings
from django.http import JsonResponse, StreamingHttpResponse
from django.views.decorators.http import require_GET

from fundacoes.core import dependency_injection as di
from fundacoes.core.exceptions import BaseErroCore
from fundacoes.infrastructure import eventos
from fundacoes.infrastructure.models import (
    Cliente as ClienteModel,
    SolicitacaoOrcamento as SolicitacaoOrcamentoModel,
)
from .serializers import ClienteSerializer, SolicitacaoOrcamentoSerializer, OrdemServicoSerializer
from .views import dados_equipe

logger = logging.getLogger(__name__)


def resposta_sse(gerador) -> StreamingHttpResponse:
    response = StreamingHttpResponse(gerador, content_type='text/event-stream')
    response['Cache-Control'] = 'no-cache'
    response['X-Accel-Buffering'] = 'no'
    return response


def _transmitir(topico, transformar=None, inicial=None):
    return eventos.transmitir(
        topico,
        transformar=transformar,
        inicial=inicial,
        keepalive_segundos=settings.SSE_KEEPALIVE_SECONDS,
    )


def _mudanca(modelo, serializer_class):
    """Evento do hub -> {type, id, data} com o registro relido do banco."""
    def transformar(evento):
        dados = None
        if evento['tipo'] != 'delete':
            registro = modelo.objects.filter(pk=evento['id']).first()
            dados = serializer_class(registro).data if registro else None
        return {'type': evento['tipo'], 'id': evento['id'], 'data': dados}
    return transformar


@require_GET
def clientes_watch(request):
    return resposta_sse(_transmitir(eventos.TOPICO_CLIENTES, _mudanca(ClienteModel, ClienteSerializer)))


@require_GET
def solicitacoes_watch(request):
    return resposta_sse(_transmitir(
        eventos.TOPICO_SOLICITACOES, _mudanca(SolicitacaoOrcamentoModel, SolicitacaoOrcamentoSerializer)
    ))


def contar_pendentes() -> int:
    return SolicitacaoOrcamentoModel.objects.filter(status='pendente', arquivado=False).count()


@require_GET
def contagem_watch(request):
    """Contador de leads pendentes: valor inicial e a cada mudança."""
    return resposta_sse(_transmitir(
        eventos.TOPICO_SOLICITACOES,
        transformar=lambda evento: {'type': 'count', 'count': contar_pendentes()},
        inicial={'type': 'count', 'count': contar_pendentes()},
    ))


@require_GET
def equipe_watch(request, equipe_id):
    """Atualizações das OS da equipe para o painel de operações."""
    caso_de_uso = di.get_acessar_painel_equipe_use_case()
    senha = request.GET.get('password')
    try:
        equipe, _ = caso_de_uso.executar(equipe_id, senha)
    except BaseErroCore as erro:
        return JsonResponse({'error': erro.message, 'detail': erro.detail}, status=erro.status_code)

    def transformar(evento):
        if evento.get('equipe_id') != equipe.id and evento.get('equipe_nome') != equipe.nome:
            return None
        _, ordens = caso_de_uso.executar(equipe.id, senha)
        return {
            'type': 'update',
            'jobs': OrdemServicoSerializer(ordens, many=True).data,
            'jobId': evento['id'],
            'operationType': evento['tipo'],
        }

    logger.info("Painel da equipe %s conectado", equipe.id)
    return resposta_sse(_transmitir(
        eventos.TOPICO_ORDENS,
        transformar=transformar,
        inicial={'type': 'connected', 'equipe': dados_equipe(equipe)},
    ))
