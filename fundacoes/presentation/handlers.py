# fundacoes/presentation/handlers.py
"""
Tratamento centralizado de erros da API.

Converte as exceções do Core e do DRF no envelope {error, detail}
usado por todas as rotas.
"""
import logging

from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from fundacoes.core.exceptions import BaseErroCore

logger = logging.getLogger(__name__)


def _issues(detalhes) -> dict:
    """Separa os erros do serializer em erros gerais e erros por campo."""
    form_errors, field_errors = [], {}
    if isinstance(detalhes, dict):
        for campo, mensagens in detalhes.items():
            lista = mensagens if isinstance(mensagens, list) else [mensagens]
            if campo == 'non_field_errors':
                form_errors.extend(str(m) for m in lista)
            else:
                field_errors[campo] = [str(m) if not isinstance(m, (dict, list)) else m for m in lista]
    elif isinstance(detalhes, list):
        form_errors.extend(str(m) for m in detalhes)
    else:
        form_errors.append(str(detalhes))
    return {'formErrors': form_errors, 'fieldErrors': field_errors}


def _resumo(issues: dict) -> str:
    partes = list(issues['formErrors'])
    for campo, mensagens in issues['fieldErrors'].items():
        partes.append(f"{campo}: {mensagens[0] if mensagens else ''}")
    return '; '.join(partes)


def tratar_excecao(exc, context):
    """EXCEPTION_HANDLER do DRF."""
    if isinstance(exc, BaseErroCore):
        return Response(
            {'error': exc.message, 'detail': exc.detail},
            status=exc.status_code
        )

    if isinstance(exc, exceptions.ValidationError):
        issues = _issues(exc.detail)
        return Response(
            {'error': 'Dados inválidos', 'detail': _resumo(issues), 'issues': issues},
            status=status.HTTP_400_BAD_REQUEST
        )

    # Http404, PermissionDenied, NotAuthenticated, MethodNotAllowed...
    response = exception_handler(exc, context)
    if response is not None:
        detalhe = response.data.get('detail') if isinstance(response.data, dict) else response.data
        response.data = {'error': str(detalhe), 'detail': getattr(detalhe, 'code', None)}
        return response

    view = context.get('view')
    logger.exception("Erro inesperado em %s", view.__class__.__name__ if view else 'view desconhecida')
    return Response(
        {'error': 'Erro interno', 'detail': str(exc)},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR
    )
