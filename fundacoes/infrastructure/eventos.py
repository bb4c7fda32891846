"""
Central de eventos em processo que alimenta os streams SSE.

Os sinais post_save/post_delete dos models publicam eventos
{tipo: insert|update|delete, id} por tópico; cada conexão SSE assina
uma fila limitada e a descarta quando o cliente desconecta.
"""
import json
import logging
import queue
import threading
from collections import defaultdict

from django.core.serializers.json import DjangoJSONEncoder
from django.db import transaction
from django.db.models.signals import post_save, post_delete

logger = logging.getLogger(__name__)

TOPICO_CLIENTES = 'clientes'
TOPICO_SOLICITACOES = 'solicitacoes'
TOPICO_ORDENS = 'ordens'

TAMANHO_FILA = 100


class CentralEventos:
    """Distribui cada evento publicado para todas as filas assinantes do tópico."""

    def __init__(self, tamanho_fila: int = TAMANHO_FILA):
        self.tamanho_fila = tamanho_fila
        self._assinantes = defaultdict(set)
        self._lock = threading.Lock()

    def assinar(self, topico: str) -> queue.Queue:
        fila = queue.Queue(maxsize=self.tamanho_fila)
        with self._lock:
            self._assinantes[topico].add(fila)
        return fila

    def cancelar(self, topico: str, fila: queue.Queue):
        with self._lock:
            self._assinantes[topico].discard(fila)

    def total_assinantes(self, topico: str) -> int:
        with self._lock:
            return len(self._assinantes[topico])

    def publicar(self, topico: str, evento: dict):
        with self._lock:
            filas = list(self._assinantes[topico])
        for fila in filas:
            try:
                fila.put_nowait(evento)
            except queue.Full:
                # Consumidor lento: o evento é descartado só para ele
                logger.warning("Fila SSE cheia no tópico %s; evento descartado", topico)


central = CentralEventos()


# ====================================================================
# FORMATAÇÃO E TRANSMISSÃO (text/event-stream)
# ====================================================================

def quadro(dados) -> str:
    return f"data: {json.dumps(dados, cls=DjangoJSONEncoder, ensure_ascii=False)}\n\n"


KEEPALIVE = ": keepalive\n\n"


def transmitir(topico: str, transformar=None, inicial=None, keepalive_segundos: int = 30, hub=None):
    """
    Gerador de quadros SSE. `transformar(evento)` converte o evento no payload
    enviado (None descarta); `inicial` é enviado assim que a conexão abre.
    """
    hub = hub or central
    fila = hub.assinar(topico)
    logger.info("Conexão SSE aberta no tópico %s", topico)
    try:
        if inicial is not None:
            yield quadro(inicial)
        while True:
            try:
                evento = fila.get(timeout=keepalive_segundos)
            except queue.Empty:
                yield KEEPALIVE
                continue
            payload = transformar(evento) if transformar else evento
            if payload is not None:
                yield quadro(payload)
    finally:
        hub.cancelar(topico, fila)
        logger.info("Conexão SSE encerrada no tópico %s", topico)


# ====================================================================
# SINAIS DO ORM
# ====================================================================

def _publicar(topico: str, evento: dict):
    # Só depois do commit: quem recebe o evento relê o registro já gravado
    transaction.on_commit(lambda: central.publicar(topico, evento))


def _evento_ordem(instance, tipo):
    return {
        'tipo': tipo,
        'id': instance.pk,
        'equipe_id': instance.equipe_id,
        'equipe_nome': instance.equipe_nome,
    }


def cliente_salvo(sender, instance, created, **kwargs):
    _publicar(TOPICO_CLIENTES, {'tipo': 'insert' if created else 'update', 'id': instance.pk})


def cliente_removido(sender, instance, **kwargs):
    _publicar(TOPICO_CLIENTES, {'tipo': 'delete', 'id': instance.pk})


def solicitacao_salva(sender, instance, created, **kwargs):
    _publicar(TOPICO_SOLICITACOES, {'tipo': 'insert' if created else 'update', 'id': instance.pk})


def solicitacao_removida(sender, instance, **kwargs):
    _publicar(TOPICO_SOLICITACOES, {'tipo': 'delete', 'id': instance.pk})


def ordem_salva(sender, instance, created, **kwargs):
    _publicar(TOPICO_ORDENS, _evento_ordem(instance, 'insert' if created else 'update'))


def ordem_removida(sender, instance, **kwargs):
    _publicar(TOPICO_ORDENS, _evento_ordem(instance, 'delete'))


def conectar_sinais():
    from .models import Cliente, SolicitacaoOrcamento, OrdemServico

    post_save.connect(cliente_salvo, sender=Cliente, dispatch_uid='sse_cliente_salvo')
    post_delete.connect(cliente_removido, sender=Cliente, dispatch_uid='sse_cliente_removido')
    post_save.connect(solicitacao_salva, sender=SolicitacaoOrcamento, dispatch_uid='sse_solicitacao_salva')
    post_delete.connect(solicitacao_removida, sender=SolicitacaoOrcamento, dispatch_uid='sse_solicitacao_removida')
    post_save.connect(ordem_salva, sender=OrdemServico, dispatch_uid='sse_ordem_salva')
    post_delete.connect(ordem_removida, sender=OrdemServico, dispatch_uid='sse_ordem_removida')
