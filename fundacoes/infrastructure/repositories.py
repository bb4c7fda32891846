"""
Camada de Infraestrutura: Implementação dos Repositórios.

Esta camada traduz as operações abstratas definidas nas Portas do Core
em chamadas concretas ao Django ORM.
"""
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from django.apps import apps
from django.db import transaction
from django.db.models import Max, Q, Sum
from django.db.utils import IntegrityError

# Importações da Camada CORE (ENTIDADES e PORTAS)
from fundacoes.core.entities import (
    Cliente, OrdemServico, Orcamento, Equipe, TransacaoCaixa, Caixa, ItemCatalogo,
    RegraDeslocamento, Configuracao, SolicitacaoOrcamento, CapturaLocalizacao,
)
from fundacoes.core.ports import (
    IClienteRepository,
    IOrdemServicoRepository,
    IOrcamentoRepository,
    IEquipeRepository,
    ITransacaoCaixaRepository,
    ICaixaRepository,
    ICatalogoRepository,
    IRegraDeslocamentoRepository,
    IConfiguracaoRepository,
    ISolicitacaoOrcamentoRepository,
    ICapturaLocalizacaoRepository,
)
from fundacoes.core.exceptions import (
    ClienteNaoEncontradoError,
    OrdemServicoNaoEncontradaError,
    OrcamentoNaoEncontradoError,
    SolicitacaoNaoEncontradaError,
    ItemNaoEncontradoError,
    ConflitoError,
    DocumentoDuplicadoError,
    TransacaoDuplicadaError,
)

from .mappers import (
    ClienteMapper, EnderecoClienteMapper, OrdemServicoMapper, ServicoOrdemMapper,
    OrcamentoMapper, ServicoOrcamentoMapper, EquipeMapper, TransacaoCaixaMapper, CaixaMapper,
    ItemCatalogoMapper, RegraDeslocamentoMapper, ConfiguracaoMapper, SolicitacaoOrcamentoMapper,
    CapturaLocalizacaoMapper,
)

logger = logging.getLogger(__name__)


# ====================================================================
# 1. REPOSITÓRIOS (Implementação Django ORM)
# ====================================================================

# Helper para Lazy Loading
def get_model(model_name):
    """Busca o modelo Django de forma segura (Lazy Loading)."""
    return apps.get_model('infrastructure', model_name)


def _proximo_seq(model_class) -> int:
    """Maior seq existente + 1 (exclusões não geram números repetidos)."""
    maior = model_class.objects.aggregate(maior=Max('seq'))['maior']
    return (maior or 0) + 1


def _carregar(model_class, pk, erro):
    if not pk:
        return model_class()
    try:
        return model_class.objects.get(pk=pk)
    except model_class.DoesNotExist:
        raise erro(detail=f"ID {pk} não existe para atualização.")


class ClienteRepositoryDjango(IClienteRepository):
    """Implementação do ClienteRepository usando o Django ORM."""

    @property
    def ClienteModel(self):
        return get_model('Cliente')

    @property
    def EnderecoModel(self):
        return get_model('EnderecoCliente')

    def _consulta(self):
        return self.ClienteModel.objects.prefetch_related('enderecos')

    def buscar_por_id(self, cliente_id: int) -> Optional[Cliente]:
        try:
            return ClienteMapper.to_entity(self._consulta().get(pk=cliente_id))
        except self.ClienteModel.DoesNotExist:
            return None

    def existe_documento(self, tipo_pessoa: str, documento: str, excluir_id: Optional[int] = None) -> bool:
        qs = self.ClienteModel.objects.filter(tipo_pessoa=tipo_pessoa, documento=documento)
        if excluir_id:
            qs = qs.exclude(pk=excluir_id)
        return qs.exists()

    def buscar_por_telefone(self, telefone: str) -> Optional[Cliente]:
        return ClienteMapper.to_entity(self._consulta().filter(telefone=telefone).first())

    def buscar_por_email(self, email: str) -> Optional[Cliente]:
        return ClienteMapper.to_entity(self._consulta().filter(email__iexact=email).first())

    def buscar_por_nome_e_telefone(self, nome: str, telefone: str) -> Optional[Cliente]:
        return ClienteMapper.to_entity(
            self._consulta().filter(nome__iexact=nome, telefone=telefone).first()
        )

    @transaction.atomic
    def salvar(self, cliente: Cliente) -> Cliente:
        """Salva o cliente e substitui a lista de endereços, preservando a ordem."""
        model = ClienteMapper.to_model(cliente, _carregar(self.ClienteModel, cliente.id, ClienteNaoEncontradoError))
        try:
            with transaction.atomic():
                model.save()
        except IntegrityError:
            raise DocumentoDuplicadoError()

        self.EnderecoModel.objects.filter(cliente=model).delete()
        enderecos = []
        for posicao, endereco in enumerate(cliente.enderecos):
            endereco_model = EnderecoClienteMapper.to_model(endereco)
            endereco_model.cliente = model
            endereco_model.posicao = posicao
            enderecos.append(endereco_model)
        self.EnderecoModel.objects.bulk_create(enderecos)

        return self.buscar_por_id(model.pk)


class OrdemServicoRepositoryDjango(IOrdemServicoRepository):
    """Implementação do OrdemServicoRepository usando o Django ORM."""

    STATUS_QUE_NAO_BLOQUEIAM = ('cancelada', 'concluida')

    @property
    def OrdemModel(self):
        return get_model('OrdemServico')

    @property
    def ServicoModel(self):
        return get_model('ServicoOrdem')

    @property
    def TransacaoModel(self):
        return get_model('TransacaoCaixa')

    def _consulta(self):
        return self.OrdemModel.objects.prefetch_related('servicos')

    def buscar_por_id(self, ordem_id: int) -> Optional[OrdemServico]:
        try:
            return OrdemServicoMapper.to_entity(self._consulta().get(pk=ordem_id))
        except self.OrdemModel.DoesNotExist:
            return None

    def proximo_seq(self) -> int:
        return _proximo_seq(self.OrdemModel)

    def listar_agendadas_no_dia(self, equipe: str, dia: date) -> List[OrdemServico]:
        filtro_equipe = Q(equipe_nome=equipe)
        if str(equipe).isdigit():
            filtro_equipe |= Q(equipe_id=int(equipe))
        qs = self._consulta().filter(
            filtro_equipe, data_prevista__date=dia
        ).exclude(status__in=self.STATUS_QUE_NAO_BLOQUEIAM)
        return [OrdemServicoMapper.to_entity(model) for model in qs]

    def listar_da_equipe(self, equipe: Equipe) -> List[OrdemServico]:
        qs = self._consulta().filter(
            Q(equipe_id=equipe.id) | Q(equipe_nome=equipe.nome)
        ).order_by('data_prevista', 'seq')
        return [OrdemServicoMapper.to_entity(model) for model in qs]

    def _salvar_model(self, ordem: OrdemServico):
        model = OrdemServicoMapper.to_model(
            ordem, _carregar(self.OrdemModel, ordem.id, OrdemServicoNaoEncontradaError)
        )
        model.save()

        self.ServicoModel.objects.filter(ordem=model).delete()
        linhas = []
        for posicao, linha in enumerate(ordem.servicos):
            linha_model = ServicoOrdemMapper.to_model(linha)
            linha_model.ordem = model
            linha_model.posicao = posicao
            linhas.append(linha_model)
        self.ServicoModel.objects.bulk_create(linhas)
        return model

    @transaction.atomic
    def salvar(self, ordem: OrdemServico) -> OrdemServico:
        try:
            with transaction.atomic():
                model = self._salvar_model(ordem)
        except IntegrityError:
            # Dois cadastros simultâneos disputando o mesmo seq
            raise ConflitoError("Número de OS já utilizado. Tente novamente.")
        return self.buscar_por_id(model.pk)

    def deletar(self, ordem_id: int):
        try:
            self.OrdemModel.objects.get(pk=ordem_id).delete()
        except self.OrdemModel.DoesNotExist:
            raise OrdemServicoNaoEncontradaError()

    def registrar_recebimento(
        self, ordem: OrdemServico, transacao: TransacaoCaixa
    ) -> Tuple[OrdemServico, TransacaoCaixa]:
        """Entrada no caixa + OS recebida: tudo ou nada."""
        try:
            with transaction.atomic():
                transacao_model = TransacaoCaixaMapper.to_model(transacao)
                transacao_model.save()
                ordem_model = self.OrdemModel.objects.select_for_update().get(pk=ordem.id)
                ordem_model.recebido = True
                ordem_model.recebido_em = ordem.recebido_em
                ordem_model.save(update_fields=['recebido', 'recebido_em', 'atualizado_em'])
        except IntegrityError:
            logger.warning("Entrada duplicada bloqueada para a OS %s", ordem.id)
            raise TransacaoDuplicadaError()

        logger.info("Recebimento registrado: OS %s, transação %s", ordem.id, transacao_model.pk)
        return self.buscar_por_id(ordem.id), TransacaoCaixaMapper.to_entity(transacao_model)


class OrcamentoRepositoryDjango(IOrcamentoRepository):
    """Implementação do OrcamentoRepository usando o Django ORM."""

    @property
    def OrcamentoModel(self):
        return get_model('Orcamento')

    @property
    def ServicoModel(self):
        return get_model('ServicoOrcamento')

    def _consulta(self):
        return self.OrcamentoModel.objects.prefetch_related('servicos')

    def buscar_por_id(self, orcamento_id: int) -> Optional[Orcamento]:
        try:
            return OrcamentoMapper.to_entity(self._consulta().get(pk=orcamento_id))
        except self.OrcamentoModel.DoesNotExist:
            return None

    def buscar_por_token(self, token: str) -> Optional[Orcamento]:
        if not token:
            return None
        return OrcamentoMapper.to_entity(self._consulta().filter(token_publico=token).first())

    def proximo_seq(self) -> int:
        return _proximo_seq(self.OrcamentoModel)

    def _salvar_model(self, orcamento: Orcamento):
        model = OrcamentoMapper.to_model(
            orcamento, _carregar(self.OrcamentoModel, orcamento.id, OrcamentoNaoEncontradoError)
        )
        model.save()

        self.ServicoModel.objects.filter(orcamento=model).delete()
        linhas = []
        for posicao, linha in enumerate(orcamento.servicos):
            linha_model = ServicoOrcamentoMapper.to_model(linha)
            linha_model.orcamento = model
            linha_model.posicao = posicao
            linhas.append(linha_model)
        self.ServicoModel.objects.bulk_create(linhas)
        return model

    @transaction.atomic
    def salvar(self, orcamento: Orcamento) -> Orcamento:
        try:
            with transaction.atomic():
                model = self._salvar_model(orcamento)
        except IntegrityError:
            raise ConflitoError("Número de orçamento já utilizado. Tente novamente.")
        return self.buscar_por_id(model.pk)

    def deletar(self, orcamento_id: int):
        try:
            self.OrcamentoModel.objects.get(pk=orcamento_id).delete()
        except self.OrcamentoModel.DoesNotExist:
            raise OrcamentoNaoEncontradoError()

    def converter_em_ordem(
        self, orcamento: Orcamento, ordem: OrdemServico
    ) -> Tuple[Orcamento, OrdemServico]:
        """Cria a OS e vincula o orçamento dentro da mesma transação."""
        ordem_repo = OrdemServicoRepositoryDjango()
        try:
            with transaction.atomic():
                ordem_model = ordem_repo._salvar_model(ordem)
                orcamento.ordem_id = ordem_model.pk
                orcamento_model = self._salvar_model(orcamento)
        except IntegrityError:
            raise ConflitoError("Não foi possível converter o orçamento. Tente novamente.")
        return self.buscar_por_id(orcamento_model.pk), ordem_repo.buscar_por_id(ordem_model.pk)


class EquipeRepositoryDjango(IEquipeRepository):

    @property
    def EquipeModel(self):
        return get_model('Equipe')

    def buscar_por_id(self, equipe_id: int) -> Optional[Equipe]:
        try:
            return EquipeMapper.to_entity(self.EquipeModel.objects.get(pk=equipe_id))
        except (self.EquipeModel.DoesNotExist, ValueError):
            return None

    def buscar_por_nome(self, nome: str) -> Optional[Equipe]:
        if not nome:
            return None
        return EquipeMapper.to_entity(self.EquipeModel.objects.filter(nome=nome).first())


class TransacaoCaixaRepositoryDjango(ITransacaoCaixaRepository):
    """Implementação do TransacaoCaixaRepository usando o Django ORM."""

    @property
    def TransacaoModel(self):
        return get_model('TransacaoCaixa')

    def existe_para_ordem(self, ordem_id: int) -> bool:
        return self.TransacaoModel.objects.filter(ordem_id=ordem_id).exists()

    def buscar_entrada_da_ordem(self, ordem_id: int) -> Optional[TransacaoCaixa]:
        return TransacaoCaixaMapper.to_entity(
            self.TransacaoModel.objects.filter(ordem_id=ordem_id, tipo='entrada').first()
        )

    def somar_por_tipo(self, caixa_id: int) -> Dict[str, Decimal]:
        somas = {'entrada': Decimal('0'), 'saida': Decimal('0')}
        linhas = (
            self.TransacaoModel.objects.filter(caixa_id=caixa_id)
            .values('tipo').annotate(total=Sum('valor'))
        )
        for linha in linhas:
            somas[linha['tipo']] = linha['total'] or Decimal('0')
        return somas

    def salvar(self, transacao: TransacaoCaixa) -> TransacaoCaixa:
        model = TransacaoCaixaMapper.to_model(
            transacao, _carregar(self.TransacaoModel, transacao.id, ItemNaoEncontradoError)
        )
        try:
            with transaction.atomic():
                model.save()
        except IntegrityError:
            # Índice parcial: uma única entrada por OS
            raise TransacaoDuplicadaError()
        return TransacaoCaixaMapper.to_entity(model)


class CaixaRepositoryDjango(ICaixaRepository):

    @property
    def CaixaModel(self):
        return get_model('Caixa')

    def buscar_aberto(self) -> Optional[Caixa]:
        return CaixaMapper.to_entity(
            self.CaixaModel.objects.filter(status='aberto').order_by('-aberto_em').first()
        )

    def buscar_ultimo_fechado(self) -> Optional[Caixa]:
        return CaixaMapper.to_entity(
            self.CaixaModel.objects.filter(status='fechado').order_by('-fechado_em').first()
        )

    @transaction.atomic
    def salvar(self, caixa: Caixa) -> Caixa:
        model = CaixaMapper.to_model(caixa, _carregar(self.CaixaModel, caixa.id, ItemNaoEncontradoError))
        model.save()
        return CaixaMapper.to_entity(model)


class CatalogoRepositoryDjango(ICatalogoRepository):

    @property
    def ItemModel(self):
        return get_model('ItemCatalogo')

    def buscar_por_id(self, item_id: int) -> Optional[ItemCatalogo]:
        try:
            return ItemCatalogoMapper.to_entity(
                self.ItemModel.objects.prefetch_related('variacoes').get(pk=item_id)
            )
        except (self.ItemModel.DoesNotExist, ValueError):
            return None


class RegraDeslocamentoRepositoryDjango(IRegraDeslocamentoRepository):

    @property
    def RegraModel(self):
        return get_model('RegraDeslocamento')

    def listar_ordenadas(self) -> List[RegraDeslocamento]:
        return [RegraDeslocamentoMapper.to_entity(m) for m in self.RegraModel.objects.order_by('ordem', 'id')]


class ConfiguracaoRepositoryDjango(IConfiguracaoRepository):

    @property
    def ConfiguracaoModel(self):
        return get_model('Configuracao')

    def obter_model(self):
        """Registro único; criado vazio na primeira leitura."""
        model = self.ConfiguracaoModel.objects.order_by('id').first()
        if model is None:
            model = self.ConfiguracaoModel.objects.create()
        return model

    def obter(self) -> Configuracao:
        return ConfiguracaoMapper.to_entity(self.obter_model())


class SolicitacaoOrcamentoRepositoryDjango(ISolicitacaoOrcamentoRepository):

    @property
    def SolicitacaoModel(self):
        return get_model('SolicitacaoOrcamento')

    def buscar_por_id(self, solicitacao_id: int) -> Optional[SolicitacaoOrcamento]:
        try:
            return SolicitacaoOrcamentoMapper.to_entity(self.SolicitacaoModel.objects.get(pk=solicitacao_id))
        except self.SolicitacaoModel.DoesNotExist:
            return None

    def proximo_seq(self) -> int:
        return _proximo_seq(self.SolicitacaoModel)

    def salvar(self, solicitacao: SolicitacaoOrcamento) -> SolicitacaoOrcamento:
        model = SolicitacaoOrcamentoMapper.to_model(
            solicitacao, _carregar(self.SolicitacaoModel, solicitacao.id, SolicitacaoNaoEncontradaError)
        )
        try:
            with transaction.atomic():
                model.save()
        except IntegrityError:
            raise ConflitoError("Número de solicitação já utilizado. Tente novamente.")
        return SolicitacaoOrcamentoMapper.to_entity(model)


class CapturaLocalizacaoRepositoryDjango(ICapturaLocalizacaoRepository):

    @property
    def CapturaModel(self):
        return get_model('CapturaLocalizacao')

    def buscar_por_token(self, token: str) -> Optional[CapturaLocalizacao]:
        return CapturaLocalizacaoMapper.to_entity(self.CapturaModel.objects.filter(token=token).first())

    def buscar_valida(self, token: str, agora: datetime) -> Optional[CapturaLocalizacao]:
        return CapturaLocalizacaoMapper.to_entity(
            self.CapturaModel.objects.filter(token=token, expira_em__gt=agora).first()
        )

    def salvar(self, captura: CapturaLocalizacao) -> CapturaLocalizacao:
        model = CapturaLocalizacaoMapper.to_model(
            captura, _carregar(self.CapturaModel, captura.id, ItemNaoEncontradoError)
        )
        model.save()
        return CapturaLocalizacaoMapper.to_entity(model)

    def remover_expiradas(self, agora: datetime) -> int:
        removidas, _ = self.CapturaModel.objects.filter(expira_em__lte=agora).delete()
        if removidas:
            logger.info("%s links de captura expirados removidos", removidas)
        return removidas
