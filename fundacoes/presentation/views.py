# fundacoes/presentation/views.py
"""
Views da API REST do back-office.

Orquestram a requisição: validam a entrada com os serializers, executam os
casos de uso do Core e devolvem a resposta no envelope {data} / {ok}.
Leituras simples (listas e detalhes) consultam o ORM diretamente.
"""
import logging

from django.conf import settings
from django.db import transaction
from django.db.models import Count, Q
from django.http import JsonResponse
from django.utils import timezone
from django.utils.dateparse import parse_date
from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from fundacoes.core import dependency_injection as di
from fundacoes.core.exceptions import (
    DadosInvalidosError,
    RegraNegocioError,
    ItemNaoEncontradoError,
    OrcamentoNaoEncontradoError,
)
from fundacoes.infrastructure.models import (
    Cliente as ClienteModel,
    OrdemServico as OrdemServicoModel,
    Orcamento as OrcamentoModel,
    TransacaoCaixa as TransacaoCaixaModel,
    Caixa as CaixaModel,
    ItemCatalogo as ItemCatalogoModel,
    Funcionario as FuncionarioModel,
    Equipe as EquipeModel,
    Maquina as MaquinaModel,
    Equipamento as EquipamentoModel,
    Manutencao as ManutencaoModel,
    Documento as DocumentoModel,
    Usuario as UsuarioModel,
    MidiaSocial as MidiaSocialModel,
    RegraDeslocamento as RegraDeslocamentoModel,
    SolicitacaoOrcamento as SolicitacaoOrcamentoModel,
)
from .serializers import (
    ClienteSerializer,
    LocalizacaoClienteSerializer,
    OrdemServicoSerializer,
    OrcamentoSerializer,
    ConverterOrcamentoSerializer,
    RecebimentoSerializer,
    AssinaturaSerializer,
    RejeicaoSerializer,
    TransacaoCaixaSerializer,
    CaixaSerializer,
    AbrirCaixaSerializer,
    FecharCaixaSerializer,
    ItemCatalogoSerializer,
    FuncionarioSerializer,
    EquipeSerializer,
    MaquinaSerializer,
    EquipamentoSerializer,
    ManutencaoSerializer,
    DocumentoSerializer,
    UsuarioSerializer,
    MidiaSocialSerializer,
    ReordenarMidiasSerializer,
    RegraDeslocamentoSerializer,
    ConfiguracaoSerializer,
    DistanciaSerializer,
    SolicitacaoOrcamentoSerializer,
    AtualizarSolicitacaoSerializer,
    ConverterSolicitacaoSerializer,
    ConverterSolicitacaoEmOrcamentoSerializer,
    CapturaLocalizacaoSerializer,
    GerarCapturaSerializer,
    CoordenadasSerializer,
    SenhaEquipeSerializer,
    AtualizarOrdemEquipeSerializer,
    servicos_da_consulta,
)

logger = logging.getLogger(__name__)


# ====================================================================
# ENVELOPE DAS RESPOSTAS
# ====================================================================

class EnvelopeMixin:
    """
    Embrulha as respostas de sucesso em {"data": ...} (listas ganham "count")
    e troca o 204 das exclusões por {"ok": true}. Erros já chegam formatados
    pelo EXCEPTION_HANDLER.
    """

    def finalize_response(self, request, response, *args, **kwargs):
        if isinstance(response, Response) and not getattr(response, 'exception', False):
            if response.status_code == status.HTTP_204_NO_CONTENT:
                response.status_code = status.HTTP_200_OK
                response.data = {'ok': True}
            elif response.status_code < 400:
                dados = response.data
                envelope = {'data': dados}
                if isinstance(dados, list):
                    envelope['count'] = len(dados)
                response.data = envelope
        return super().finalize_response(request, response, *args, **kwargs)


def _bool(valor) -> bool:
    return str(valor).lower() in ('1', 'true', 'sim', 'yes')


# ====================================================================
# 1. CLIENTES
# ====================================================================

class ClienteViewSet(EnvelopeMixin, viewsets.ModelViewSet):
    """CRUD de clientes; a escrita passa pelos casos de uso (documento único)."""
    queryset = ClienteModel.objects.prefetch_related('enderecos')
    serializer_class = ClienteSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        cliente = di.get_cadastrar_cliente_use_case().executar(serializer.to_entity())
        return Response(self.get_serializer(cliente).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data, partial=kwargs.pop('partial', False))
        serializer.is_valid(raise_exception=True)
        cliente = di.get_atualizar_cliente_use_case().executar(int(kwargs['pk']), serializer.dados_atualizacao())
        return Response(self.get_serializer(cliente).data)

    @action(detail=True, methods=['put'], url_path='location')
    def location(self, request, pk=None):
        serializer = LocalizacaoClienteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dados = serializer.validated_data
        cliente = di.get_atualizar_localizacao_cliente_use_case().executar(
            int(pk), dados['addressIndex'], dados['latitude'], dados['longitude']
        )
        return Response(ClienteSerializer(cliente).data)


# ====================================================================
# 2. ORDENS DE SERVIÇO
# ====================================================================

class OrdemServicoViewSet(EnvelopeMixin, viewsets.ModelViewSet):
    queryset = OrdemServicoModel.objects.prefetch_related('servicos').order_by('-criado_em')
    serializer_class = OrdemServicoSerializer

    @action(detail=False, methods=['get'])
    def availability(self, request):
        """Horários livres e ocupados da equipe no dia para a duração dos serviços."""
        equipe = request.query_params.get('team')
        texto_data = request.query_params.get('date')
        if not equipe or not texto_data:
            raise DadosInvalidosError("Parâmetros obrigatórios: team e date")
        try:
            dia = parse_date(texto_data)
        except ValueError:
            dia = None
        if dia is None:
            raise DadosInvalidosError("Data inválida")

        resultado = di.get_calcular_disponibilidade_use_case().executar(
            equipe,
            dia,
            servicos_da_consulta(request.query_params.get('services')),
            fuso=timezone.get_current_timezone(),
        )
        return Response({
            'available': resultado.disponiveis,
            'booked': resultado.ocupados,
            'date': resultado.data.isoformat(),
            'estimatedDuration': resultado.duracao_estimada,
            'durationText': resultado.duracao_texto,
        })

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        ordem = di.get_criar_ordem_use_case().executar(serializer.to_entity())
        return Response(self.get_serializer(ordem).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        ordem_id = int(kwargs['pk'])
        if kwargs.pop('partial', False):
            serializer = self.get_serializer(data=request.data, partial=True)
            serializer.is_valid(raise_exception=True)
            ordem = di.get_alterar_ordem_use_case().executar(ordem_id, serializer.dados_atualizacao())
        else:
            serializer = self.get_serializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            ordem = di.get_atualizar_ordem_use_case().executar(ordem_id, serializer.dados_atualizacao())
        return Response(self.get_serializer(ordem).data)

    def destroy(self, request, *args, **kwargs):
        di.get_excluir_ordem_use_case().executar(int(kwargs['pk']))
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['post'])
    def received(self, request, pk=None):
        serializer = RecebimentoSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dados = serializer.validated_data
        ordem, transacao = di.get_registrar_recebimento_use_case().executar(
            int(pk),
            forma_pagamento=dados.get('forma_pagamento'),
            data=dados.get('data'),
            observacoes=dados.get('observacoes'),
        )
        return Response({
            'ordem': OrdemServicoSerializer(ordem).data,
            'transacao': TransacaoCaixaSerializer(transacao).data if transacao else None,
        })

    @action(detail=True, methods=['post'])
    def signature(self, request, pk=None):
        serializer = AssinaturaSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        ordem = di.get_registrar_assinatura_ordem_use_case().executar(
            int(pk), serializer.validated_data['signature']
        )
        return Response(OrdemServicoSerializer(ordem).data)


# ====================================================================
# 3. ORÇAMENTOS
# ====================================================================

class OrcamentoViewSet(EnvelopeMixin, viewsets.ModelViewSet):
    queryset = (
        OrcamentoModel.objects.prefetch_related('servicos')
        .annotate(total_servicos=Count('servicos'))
        .order_by('-criado_em')
    )
    serializer_class = OrcamentoSerializer

    @action(detail=False, methods=['get'], url_path=r'client/(?P<cliente_id>\d+)')
    def por_cliente(self, request, cliente_id=None):
        orcamentos = self.get_queryset().filter(cliente_id=cliente_id)
        return Response(self.get_serializer(orcamentos, many=True).data)

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        orcamento = di.get_criar_orcamento_use_case().executar(serializer.to_entity())
        return Response(self.get_serializer(orcamento).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        # PUT e PATCH atualizam apenas os campos enviados
        kwargs.pop('partial', None)
        serializer = self.get_serializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        orcamento = di.get_atualizar_orcamento_use_case().executar(
            int(kwargs['pk']), serializer.dados_atualizacao()
        )
        return Response(self.get_serializer(orcamento).data)

    def destroy(self, request, *args, **kwargs):
        di.get_excluir_orcamento_use_case().executar(int(kwargs['pk']))
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['post'])
    def convert(self, request, pk=None):
        serializer = ConverterOrcamentoSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dados = serializer.validated_data
        orcamento, ordem = di.get_converter_orcamento_use_case().executar(
            int(pk),
            data_prevista=dados['data_prevista'],
            equipe_id=dados.get('equipe_id'),
            equipe_nome=dados.get('equipe'),
            local=dados.get('local'),
            observacoes=dados.get('observacoes'),
        )
        return Response({
            'orcamento': OrcamentoSerializer(orcamento).data,
            'ordem': OrdemServicoSerializer(ordem).data,
        })

    @action(detail=True, methods=['post'], url_path='generate-link')
    def generate_link(self, request, pk=None):
        orcamento = di.get_gerar_link_publico_use_case().executar(int(pk))
        return Response({'token': orcamento.token_publico, 'orcamento': OrcamentoSerializer(orcamento).data})

    # -- Rotas públicas (link enviado ao cliente) --

    @action(detail=False, methods=['get'], url_path=r'public/(?P<token>[0-9a-fA-F]+)')
    def publico(self, request, token=None):
        orcamento = self.get_queryset().filter(token_publico=token).first()
        if orcamento is None:
            raise OrcamentoNaoEncontradoError()
        return Response(self.get_serializer(orcamento).data)

    @action(detail=False, methods=['post'], url_path=r'public/(?P<token>[0-9a-fA-F]+)/approve')
    def aprovar_publico(self, request, token=None):
        serializer = AssinaturaSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        orcamento = di.get_responder_orcamento_use_case().aprovar_publico(
            token, serializer.validated_data['signature']
        )
        return Response(OrcamentoSerializer(orcamento).data)

    @action(detail=False, methods=['post'], url_path=r'public/(?P<token>[0-9a-fA-F]+)/reject')
    def rejeitar_publico(self, request, token=None):
        serializer = RejeicaoSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        orcamento = di.get_responder_orcamento_use_case().rejeitar_publico(
            token, serializer.validated_data['rejectionReason']
        )
        return Response(OrcamentoSerializer(orcamento).data)


# ====================================================================
# 4. CAIXA (TRANSAÇÕES E SESSÕES)
# ====================================================================

class TransacaoCaixaViewSet(EnvelopeMixin, viewsets.ModelViewSet):
    serializer_class = TransacaoCaixaSerializer
    http_method_names = ['get', 'post', 'delete', 'head', 'options']

    def get_queryset(self):
        qs = TransacaoCaixaModel.objects.order_by('-data', '-criado_em')
        params = self.request.query_params
        if params.get('date'):
            qs = qs.filter(data=params['date'])
        if params.get('type'):
            qs = qs.filter(tipo=params['type'])
        if params.get('clientId'):
            qs = qs.filter(cliente_id=params['clientId'])
        return qs

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        transacao = di.get_registrar_transacao_use_case().executar(serializer.to_entity())
        return Response(self.get_serializer(transacao).data, status=status.HTTP_201_CREATED)


class CaixaViewSet(EnvelopeMixin, viewsets.ReadOnlyModelViewSet):
    serializer_class = CaixaSerializer

    def get_queryset(self):
        qs = CaixaModel.objects.order_by('-aberto_em')
        if self.request.query_params.get('status'):
            qs = qs.filter(status=self.request.query_params['status'])
        return qs

    @action(detail=False, methods=['get'])
    def current(self, request):
        caixa = di.get_consultar_caixa_atual_use_case().executar()
        return Response(CaixaSerializer(caixa).data if caixa else None)

    @action(detail=False, methods=['post'])
    def open(self, request):
        serializer = AbrirCaixaSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        caixa = di.get_abrir_caixa_use_case().executar(**serializer.validated_data)
        return Response(CaixaSerializer(caixa).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['post'])
    def close(self, request):
        serializer = FecharCaixaSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        caixa = di.get_fechar_caixa_use_case().executar(**serializer.validated_data)
        return Response(CaixaSerializer(caixa).data)


# ====================================================================
# 5. CATÁLOGO, PESSOAL E FROTA
# ====================================================================

class ItemCatalogoViewSet(EnvelopeMixin, viewsets.ModelViewSet):
    serializer_class = ItemCatalogoSerializer

    def get_queryset(self):
        qs = ItemCatalogoModel.objects.prefetch_related('variacoes')
        params = self.request.query_params
        if params.get('search'):
            qs = qs.filter(Q(nome__icontains=params['search']) | Q(descricao__icontains=params['search']))
        if params.get('category'):
            qs = qs.filter(categoria=params['category'])
        if params.get('active') not in (None, ''):
            qs = qs.filter(ativo=_bool(params['active']))
        return qs

    @action(detail=False, methods=['get'], url_path='public/services')
    def servicos_publicos(self, request):
        """Serviços ativos para o formulário público de orçamento."""
        itens = ItemCatalogoModel.objects.filter(ativo=True).order_by('nome')
        return Response([{'id': i.id, 'name': i.nome, 'category': i.categoria} for i in itens])


class FuncionarioViewSet(EnvelopeMixin, viewsets.ModelViewSet):
    queryset = FuncionarioModel.objects.all()
    serializer_class = FuncionarioSerializer


class EquipeViewSet(EnvelopeMixin, viewsets.ModelViewSet):
    queryset = EquipeModel.objects.prefetch_related('funcionarios')
    serializer_class = EquipeSerializer

    @transaction.atomic
    def perform_destroy(self, instance):
        instance.funcionarios.update(equipe=None, equipe_nome=None)
        instance.delete()


class MaquinaViewSet(EnvelopeMixin, viewsets.ModelViewSet):
    queryset = MaquinaModel.objects.all()
    serializer_class = MaquinaSerializer


class EquipamentoViewSet(EnvelopeMixin, viewsets.ModelViewSet):
    queryset = EquipamentoModel.objects.all()
    serializer_class = EquipamentoSerializer


class ManutencaoViewSet(EnvelopeMixin, viewsets.ModelViewSet):
    serializer_class = ManutencaoSerializer

    def get_queryset(self):
        qs = ManutencaoModel.objects.all()
        if self.request.query_params.get('itemType'):
            qs = qs.filter(item_tipo=self.request.query_params['itemType'])
        return qs

    @action(detail=False, methods=['get'], url_path=r'item/(?P<item_id>\d+)')
    def historico(self, request, item_id=None):
        manutencoes = self.get_queryset().filter(item_id=item_id)
        return Response(self.get_serializer(manutencoes, many=True).data)


# ====================================================================
# 6. DOCUMENTOS, USUÁRIOS, MÍDIAS E CONFIGURAÇÕES
# ====================================================================

class DocumentoViewSet(EnvelopeMixin, viewsets.ModelViewSet):
    serializer_class = DocumentoSerializer

    def get_queryset(self):
        qs = DocumentoModel.objects.all()
        params = self.request.query_params
        if params.get('type'):
            qs = qs.filter(tipo=params['type'])
        if params.get('status'):
            qs = qs.filter(status=params['status'])
        if params.get('clientId'):
            qs = qs.filter(cliente_id=params['clientId'])
        return qs


class UsuarioViewSet(EnvelopeMixin, viewsets.ModelViewSet):
    queryset = UsuarioModel.objects.all()
    serializer_class = UsuarioSerializer


class MidiaSocialViewSet(EnvelopeMixin, viewsets.ModelViewSet):
    """Galeria do site; uploads de clientes aguardam aprovação."""
    queryset = MidiaSocialModel.objects.all()
    serializer_class = MidiaSocialSerializer

    @action(detail=False, methods=['get'])
    def public(self, request):
        itens = self.get_queryset().filter(ativo=True).exclude(envio_cliente=True, aprovado=False)
        return Response(self.get_serializer(itens, many=True).data)

    @action(detail=False, methods=['get'])
    def pending(self, request):
        itens = self.get_queryset().filter(envio_cliente=True, aprovado=False).order_by('-criado_em')
        return Response(self.get_serializer(itens, many=True).data)

    def _upload_do_cliente(self):
        item = self.get_object()
        if not item.envio_cliente:
            raise RegraNegocioError("Este item não é um upload de cliente")
        return item

    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        item = self._upload_do_cliente()
        if item.aprovado:
            raise RegraNegocioError("Este item já foi aprovado")
        if not item.ordem:
            ultimo = MidiaSocialModel.objects.order_by('-ordem').values_list('ordem', flat=True).first()
            item.ordem = (ultimo or 0) + 1
        item.aprovado = True
        item.ativo = True
        item.save()
        return Response(self.get_serializer(item).data)

    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        item = self._upload_do_cliente()
        item.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=['post'])
    @transaction.atomic
    def reorder(self, request):
        serializer = ReordenarMidiasSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        for item in serializer.validated_data['items']:
            MidiaSocialModel.objects.filter(pk=item['id']).update(ordem=item['ordem'])
        return Response({'success': True})


class ConfiguracaoView(EnvelopeMixin, APIView):
    """Registro único de configurações da empresa (criado na primeira leitura)."""

    def get(self, request):
        configuracao = di.configuracao_repo.obter_model()
        return Response(ConfiguracaoSerializer(configuracao).data)

    def put(self, request):
        configuracao = di.configuracao_repo.obter_model()
        serializer = ConfiguracaoSerializer(configuracao, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)


# ====================================================================
# 7. DESLOCAMENTO
# ====================================================================

class RegraDeslocamentoViewSet(EnvelopeMixin, viewsets.ModelViewSet):
    queryset = RegraDeslocamentoModel.objects.order_by('ordem', 'id')
    serializer_class = RegraDeslocamentoSerializer


class CalcularDistanciaView(EnvelopeMixin, APIView):

    def post(self, request):
        serializer = DistanciaSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        cotacao = di.get_calcular_deslocamento_use_case().executar(serializer.validated_data['clientAddress'])
        return Response({
            'distanceKm': cotacao.distancia_km,
            'distanceText': cotacao.distancia_texto,
            'durationText': cotacao.duracao_texto,
            'durationSeconds': cotacao.duracao_segundos,
            'price': cotacao.preco,
            'description': cotacao.descricao,
            'ruleId': cotacao.regra_id,
            'companyAddress': cotacao.endereco_empresa,
            'clientAddress': cotacao.endereco_cliente,
        })


# ====================================================================
# 8. SOLICITAÇÕES DE ORÇAMENTO (LEADS)
# ====================================================================

class SolicitacaoOrcamentoViewSet(EnvelopeMixin, viewsets.ModelViewSet):
    serializer_class = SolicitacaoOrcamentoSerializer
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']

    def get_queryset(self):
        qs = SolicitacaoOrcamentoModel.objects.order_by('-criado_em')
        params = self.request.query_params
        if not _bool(params.get('showArchived')):
            qs = qs.filter(arquivado=False)
        if params.get('status'):
            qs = qs.filter(status=params['status'])
        if params.get('search'):
            termo = params['search']
            qs = qs.filter(
                Q(nome__icontains=termo) | Q(telefone__icontains=termo)
                | Q(email__icontains=termo) | Q(endereco__icontains=termo)
            )
        return qs

    def get_object(self):
        # Detalhe e ações alcançam também as arquivadas
        solicitacao = SolicitacaoOrcamentoModel.objects.filter(pk=self.kwargs['pk']).first()
        if solicitacao is None:
            raise ItemNaoEncontradoError("Solicitação não encontrada")
        return solicitacao

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        solicitacao = di.get_criar_solicitacao_use_case().executar(serializer.to_entity())
        return Response(self.get_serializer(solicitacao).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        serializer = AtualizarSolicitacaoSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        solicitacao = di.get_atualizar_solicitacao_use_case().executar(
            int(kwargs['pk']), serializer.validated_data
        )
        return Response(self.get_serializer(solicitacao).data)

    @action(detail=False, methods=['get'], url_path='count/pending')
    def pendentes(self, request):
        total = SolicitacaoOrcamentoModel.objects.filter(status='pendente', arquivado=False).count()
        return Response({'count': total})

    @action(detail=True, methods=['get'], url_path='check-client')
    def check_client(self, request, pk=None):
        cliente = di.get_verificar_cliente_solicitacao_use_case().executar(int(pk))
        return Response({
            'exists': cliente is not None,
            'cliente': ClienteSerializer(cliente).data if cliente else None,
        })

    @action(detail=True, methods=['post'])
    def convert(self, request, pk=None):
        serializer = ConverterSolicitacaoSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        solicitacao, cliente, orcamento = di.get_converter_solicitacao_use_case().executar(
            int(pk),
            criar_orcamento=serializer.validated_data['createBudget'],
            observacoes=serializer.validated_data.get('notes'),
        )
        return Response({
            'solicitacao': self.get_serializer(solicitacao).data,
            'cliente': ClienteSerializer(cliente).data,
            'orcamento': OrcamentoSerializer(orcamento).data if orcamento else None,
        })

    @action(detail=True, methods=['post'], url_path='convert-to-budget')
    def convert_to_budget(self, request, pk=None):
        serializer = ConverterSolicitacaoEmOrcamentoSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        solicitacao, cliente, orcamento = di.get_converter_solicitacao_em_orcamento_use_case().executar(
            int(pk),
            cliente_id=serializer.validated_data['clientId'],
            observacoes=serializer.validated_data.get('notes'),
        )
        return Response({
            'solicitacao': self.get_serializer(solicitacao).data,
            'cliente': ClienteSerializer(cliente).data,
            'orcamento': OrcamentoSerializer(orcamento).data,
        })


# ====================================================================
# 9. CAPTURA DE LOCALIZAÇÃO
# ====================================================================

class GerarCapturaView(EnvelopeMixin, APIView):

    def post(self, request):
        serializer = GerarCapturaSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dados = serializer.validated_data
        captura = di.get_gerar_captura_use_case().executar(
            dados['clientId'],
            dados['addressIndex'],
            descricao=dados.get('description'),
            tipo_recurso=dados.get('resourceType'),
        )
        return Response({
            'token': captura.token,
            'link': f"{settings.FRONTEND_URL.rstrip('/')}/capturar-localizacao/{captura.token}",
            'expira_em': captura.expira_em,
        }, status=status.HTTP_201_CREATED)


class RegistrarCapturaView(EnvelopeMixin, APIView):

    def post(self, request, token):
        serializer = CoordenadasSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        captura = di.get_registrar_captura_use_case().executar(
            token, serializer.validated_data['latitude'], serializer.validated_data['longitude']
        )
        return Response(CapturaLocalizacaoSerializer(captura).data)


class StatusCapturaView(EnvelopeMixin, APIView):

    def get(self, request, token):
        captura = di.get_consultar_captura_use_case().executar(token)
        return Response(CapturaLocalizacaoSerializer(captura).data)


# ====================================================================
# 10. PAINEL DE OPERAÇÕES DAS EQUIPES
# ====================================================================

def dados_equipe(equipe) -> dict:
    """Dados públicos da equipe no painel (sem a senha de operação)."""
    return {
        'id': equipe.id,
        'nome': equipe.nome,
        'status': equipe.status,
        'lider': equipe.lider,
        'membros': equipe.membros,
    }


class PainelEquipeView(EnvelopeMixin, APIView):

    def post(self, request, equipe_id):
        serializer = SenhaEquipeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        equipe, ordens = di.get_acessar_painel_equipe_use_case().executar(
            equipe_id, serializer.validated_data.get('password')
        )
        return Response({
            'equipe': dados_equipe(equipe),
            'ordens': OrdemServicoSerializer(ordens, many=True).data,
        })


class AtualizarOrdemEquipeView(EnvelopeMixin, APIView):

    def patch(self, request, ordem_id):
        serializer = AtualizarOrdemEquipeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        ordem = di.get_atualizar_ordem_pela_equipe_use_case().executar(
            ordem_id,
            serializer.validated_data['teamId'],
            serializer.validated_data.get('password'),
            serializer.dados(),
        )
        return Response(OrdemServicoSerializer(ordem).data)


def health(request):
    return JsonResponse({'ok': True})
