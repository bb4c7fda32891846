# fundacoes/core/use_cases.py
"""
Implementação dos Casos de Uso (Lógica de Negócio) da aplicação.
Esta camada depende apenas das Entidades e Portas (Interfaces) do Core,
garantindo o isolamento da lógica de negócio.
"""
import copy
import hmac
import logging
import re
import secrets
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Dict, Tuple

# Entidades e Exceções
from fundacoes.core.entities import (
    Cliente, EnderecoCliente, LinhaServico, OrdemServico, Orcamento, Equipe,
    TransacaoCaixa, Caixa, RegraDeslocamento, SolicitacaoOrcamento,
    CapturaLocalizacao, Disponibilidade, CotacaoDeslocamento, ler_decimal,
)
from fundacoes.core.exceptions import (
    DadosInvalidosError,
    RegraNegocioError,
    ItemNaoEncontradoError,
    ClienteNaoEncontradoError,
    OrdemServicoNaoEncontradaError,
    OrcamentoNaoEncontradoError,
    EquipeNaoEncontradaError,
    SolicitacaoNaoEncontradaError,
    ConflitoError,
    DocumentoDuplicadoError,
    TransacaoDuplicadaError,
    CredenciaisInvalidasError,
    AcessoNegadoError,
    ServicoExternoError,
)

# Portas (Interfaces) - Importadas do fundacoes/core/ports.py
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
    IDistanciaGateway,
    IGeocodificadorGateway,
)

logger = logging.getLogger(__name__)

CENTAVOS = Decimal('0.01')


def _agora() -> datetime:
    return datetime.now(timezone.utc)


def _centavos(valor) -> Decimal:
    return Decimal(str(valor)).quantize(CENTAVOS, rounding=ROUND_HALF_UP)


def _aplicar_campos(entidade, dados: dict, permitidos=None):
    """Copia para a entidade apenas os campos conhecidos (e permitidos)."""
    for campo, valor in dados.items():
        if permitidos is not None and campo not in permitidos:
            continue
        if hasattr(entidade, campo):
            setattr(entidade, campo, valor)


# ====================================================================
# 1. CASOS DE USO DE CLIENTES
# ====================================================================

def normalizar_cliente(cliente: Cliente) -> Cliente:
    """E-mail em minúsculas, documento vazio vira None e endereços ganham o texto formatado."""
    if cliente.email:
        cliente.email = cliente.email.strip().lower()
    if cliente.documento is not None:
        cliente.documento = cliente.documento.strip() or None
    for endereco in cliente.enderecos:
        if not endereco.endereco:
            endereco.endereco = endereco.formatar() or None
    if not cliente.endereco and cliente.enderecos:
        cliente.endereco = cliente.enderecos[0].endereco
    return cliente


class CadastrarClienteUseCase:
    """Cadastra um cliente recusando documento repetido para o mesmo tipo de pessoa."""
    def __init__(self, cliente_repo: IClienteRepository):
        self.cliente_repo = cliente_repo

    def executar(self, cliente: Cliente) -> Cliente:
        normalizar_cliente(cliente)
        if cliente.documento and self.cliente_repo.existe_documento(cliente.tipo_pessoa, cliente.documento):
            raise DocumentoDuplicadoError()
        return self.cliente_repo.salvar(cliente)


class AtualizarClienteUseCase:
    def __init__(self, cliente_repo: IClienteRepository):
        self.cliente_repo = cliente_repo

    def executar(self, cliente_id: int, dados: dict) -> Cliente:
        cliente = self.cliente_repo.buscar_por_id(cliente_id)
        if not cliente:
            raise ClienteNaoEncontradoError()

        _aplicar_campos(cliente, dados)
        normalizar_cliente(cliente)

        if cliente.documento and self.cliente_repo.existe_documento(
            cliente.tipo_pessoa, cliente.documento, excluir_id=cliente.id
        ):
            raise DocumentoDuplicadoError()
        return self.cliente_repo.salvar(cliente)


class AtualizarLocalizacaoClienteUseCase:
    """Grava as coordenadas de um dos endereços do cliente."""
    def __init__(self, cliente_repo: IClienteRepository):
        self.cliente_repo = cliente_repo

    def executar(self, cliente_id: int, indice: int, latitude: float, longitude: float) -> Cliente:
        cliente = self.cliente_repo.buscar_por_id(cliente_id)
        if not cliente:
            raise ClienteNaoEncontradoError()
        if indice < 0 or indice >= len(cliente.enderecos):
            raise DadosInvalidosError("Endereço não encontrado para este cliente.")

        cliente.enderecos[indice].latitude = latitude
        cliente.enderecos[indice].longitude = longitude
        return self.cliente_repo.salvar(cliente)


class GerenciarEnderecosClienteUseCase:
    """Endereços de obra mantidos pelo próprio cliente no portal, indicados pela posição na lista."""
    def __init__(self, cliente_repo: IClienteRepository):
        self.cliente_repo = cliente_repo

    def _cliente(self, cliente_id: int) -> Cliente:
        cliente = self.cliente_repo.buscar_por_id(cliente_id)
        if not cliente:
            raise ClienteNaoEncontradoError()
        return cliente

    def _conferir_indice(self, cliente: Cliente, indice: int):
        if indice < 0 or indice >= len(cliente.enderecos):
            raise ItemNaoEncontradoError("Endereço não encontrado")

    def listar(self, cliente_id: int) -> List[EnderecoCliente]:
        return self._cliente(cliente_id).enderecos

    def adicionar(self, cliente_id: int, endereco: EnderecoCliente) -> EnderecoCliente:
        cliente = self._cliente(cliente_id)
        cliente.enderecos.append(endereco)
        salvo = self.cliente_repo.salvar(normalizar_cliente(cliente))
        return salvo.enderecos[-1]

    def atualizar(self, cliente_id: int, indice: int, dados: dict) -> EnderecoCliente:
        cliente = self._cliente(cliente_id)
        self._conferir_indice(cliente, indice)
        _aplicar_campos(cliente.enderecos[indice], dados)
        salvo = self.cliente_repo.salvar(normalizar_cliente(cliente))
        return salvo.enderecos[indice]

    def remover(self, cliente_id: int, indice: int) -> None:
        cliente = self._cliente(cliente_id)
        self._conferir_indice(cliente, indice)
        del cliente.enderecos[indice]
        self.cliente_repo.salvar(cliente)
        logger.info("Cliente %s removeu o endereço %s pelo portal", cliente_id, indice)


def coordenadas_do_local(cliente: Optional[Cliente], local: Optional[str]) -> Tuple[Optional[float], Optional[float]]:
    """Coordenadas do endereço do cliente cujo texto coincide com o local da obra."""
    if not cliente or not local:
        return None, None
    for endereco in cliente.enderecos:
        if endereco.endereco == local and endereco.geolocalizado:
            return endereco.latitude, endereco.longitude
    return None, None


# ====================================================================
# 2. AGENDA: CÁLCULO DE DISPONIBILIDADE DA EQUIPE
# ====================================================================

DURACAO_PADRAO_MINUTOS = 120
INTERVALO_DESLOCAMENTO_MINUTOS = 30
GRADE_MINUTOS = 30
PRIMEIRA_HORA = 6
ULTIMA_HORA = 19
FIM_EXPEDIENTE = time(19, 30)


def estimar_duracao(servicos: List[LinhaServico], duracao_salva: Optional[float] = None) -> float:
    """
    Duração de uma OS em minutos: a duração salva, senão a soma dos serviços
    mais o intervalo de deslocamento, senão o padrão de duas horas.
    """
    if duracao_salva:
        return duracao_salva
    total = sum(servico.minutos_execucao for servico in servicos)
    if total > 0:
        return total + INTERVALO_DESLOCAMENTO_MINUTOS
    return DURACAO_PADRAO_MINUTOS


def formatar_duracao(minutos: float) -> str:
    horas = int(minutos // 60)
    resto = int(round(minutos - horas * 60))
    if horas > 0:
        return f"{horas}h {resto}min" if resto > 0 else f"{horas}h"
    return f"{resto}min"


class CalcularDisponibilidadeUseCase:
    """
    Varre a grade de 30 em 30 minutos (06:00 às 19:30) e separa os horários
    livres dos que colidem com OS já agendadas para a equipe no dia.
    """
    def __init__(self, ordem_repo: IOrdemServicoRepository):
        self.ordem_repo = ordem_repo

    @staticmethod
    def _no_fuso(momento: datetime, fuso) -> datetime:
        if fuso is None:
            return momento.replace(tzinfo=None)
        if momento.tzinfo is None:
            return momento.replace(tzinfo=fuso)
        return momento.astimezone(fuso)

    def executar(self, equipe: str, dia: date, servicos: List[LinhaServico], fuso=None) -> Disponibilidade:
        if not equipe:
            raise DadosInvalidosError("Parâmetros obrigatórios: team e date")

        duracao = estimar_duracao(servicos)

        ocupacoes = []
        for ordem in self.ordem_repo.listar_agendadas_no_dia(equipe, dia):
            if not ordem.data_prevista:
                continue
            inicio = self._no_fuso(ordem.data_prevista, fuso)
            if inicio.date() != dia:
                continue
            minutos = estimar_duracao(ordem.servicos, ordem.duracao_estimada)
            ocupacoes.append((inicio, inicio + timedelta(minutes=minutos)))

        fim_expediente = datetime.combine(dia, FIM_EXPEDIENTE, tzinfo=fuso)
        disponiveis, ocupados = [], []
        for hora in range(PRIMEIRA_HORA, ULTIMA_HORA + 1):
            for minuto in range(0, 60, GRADE_MINUTOS):
                inicio_slot = datetime.combine(dia, time(hora, minuto), tzinfo=fuso)
                fim_slot = inicio_slot + timedelta(minutes=duracao)
                # A OS precisa terminar dentro do expediente
                if fim_slot > fim_expediente:
                    continue

                rotulo = f"{hora:02d}:{minuto:02d}"
                conflito = any(inicio_slot < fim and fim_slot > inicio for inicio, fim in ocupacoes)
                (ocupados if conflito else disponiveis).append(rotulo)

        if float(duracao).is_integer():
            duracao = int(duracao)
        return Disponibilidade(
            disponiveis=disponiveis,
            ocupados=ocupados,
            data=dia,
            duracao_estimada=duracao,
            duracao_texto=formatar_duracao(duracao),
        )


# ====================================================================
# 3. PRECIFICAÇÃO DE SERVIÇOS (OS e Orçamentos)
# ====================================================================

def precificar_linhas(linhas: List[LinhaServico]):
    """Calcula desconto e valor final de cada linha que tenha valor."""
    for linha in linhas:
        if linha.valor is None:
            continue
        valor = Decimal(str(linha.valor))
        percentual = Decimal(str(linha.desconto_percentual or 0))
        desconto = _centavos(valor * percentual / 100) if percentual > 0 else Decimal('0.00')
        linha.valor = valor
        linha.desconto_percentual = percentual
        linha.desconto_valor = desconto
        linha.valor_final = _centavos(valor - desconto)


def aplicar_totais(documento):
    """
    Totaliza uma OS ou orçamento. Um valor informado explicitamente prevalece;
    senão soma os serviços com o deslocamento; sem serviços precificados, vale
    o próprio deslocamento.
    """
    precificar_linhas(documento.servicos)

    total_final = sum((Decimal(str(l.valor_final if l.valor_final is not None else (l.valor or 0)))
                       for l in documento.servicos), Decimal('0'))
    total_valor = sum((Decimal(str(l.valor or 0)) for l in documento.servicos), Decimal('0'))
    total_desconto = sum((Decimal(str(l.desconto_valor or 0)) for l in documento.servicos), Decimal('0'))
    deslocamento = Decimal(str(documento.deslocamento_preco or 0))

    if documento.valor is not None:
        valor = Decimal(str(documento.valor))
        percentual = Decimal(str(documento.desconto_percentual or 0))
        desconto = _centavos(valor * percentual / 100) if percentual > 0 else Decimal('0.00')
        documento.valor = valor
        documento.desconto_percentual = percentual
        documento.desconto_valor = desconto
        documento.valor_final = _centavos(valor - desconto)
    elif total_final > 0:
        documento.valor = _centavos(total_valor + deslocamento)
        documento.desconto_percentual = (
            _centavos(total_desconto / total_valor * 100) if total_valor > 0 else Decimal('0')
        )
        documento.desconto_valor = _centavos(total_desconto)
        documento.valor_final = _centavos(total_final + deslocamento)
    elif deslocamento > 0:
        documento.valor = _centavos(deslocamento)
        documento.valor_final = _centavos(deslocamento)
    return documento


def recalcular_valor_final(documento):
    """Recalcula desconto e valor final a partir do valor e percentual atuais."""
    if documento.valor is None:
        return documento
    valor = Decimal(str(documento.valor))
    percentual = Decimal(str(documento.desconto_percentual or 0))
    documento.desconto_valor = _centavos(valor * percentual / 100) if percentual > 0 else Decimal('0.00')
    documento.valor_final = _centavos(valor - documento.desconto_valor)
    return documento


def resolver_equipe(equipe_repo: IEquipeRepository, documento):
    """Completa o par (equipe_id, equipe_nome): id -> nome, ou nome -> id."""
    if documento.equipe_id:
        equipe = equipe_repo.buscar_por_id(documento.equipe_id)
        if not equipe:
            raise EquipeNaoEncontradaError()
        documento.equipe_nome = equipe.nome
    elif documento.equipe_nome:
        equipe = equipe_repo.buscar_por_nome(documento.equipe_nome)
        if equipe:
            documento.equipe_id = equipe.id
            documento.equipe_nome = equipe.nome
    return documento


def titulo_ordem(cliente_nome: Optional[str], data_prevista: Optional[datetime], seq: int) -> str:
    rotulo_data = data_prevista.strftime('%d/%m/%Y %H:%M') if data_prevista else 'sem-data'
    return f"{cliente_nome or 'Cliente não informado'} - {rotulo_data} - {seq:06d}"


def titulo_orcamento(cliente_nome: Optional[str], seq: int) -> str:
    return f"Orçamento {cliente_nome or 'Cliente não informado'} - ORC{seq:06d}"


# ====================================================================
# 4. CASOS DE USO DE ORDENS DE SERVIÇO
# ====================================================================

class _BaseOrdemUseCase:
    def __init__(self, ordem_repo: IOrdemServicoRepository, cliente_repo: IClienteRepository,
                 equipe_repo: IEquipeRepository):
        self.ordem_repo = ordem_repo
        self.cliente_repo = cliente_repo
        self.equipe_repo = equipe_repo

    def _denormalizar_cliente(self, ordem: OrdemServico):
        if not ordem.cliente_id:
            return
        cliente = self.cliente_repo.buscar_por_id(ordem.cliente_id)
        if not cliente:
            raise ClienteNaoEncontradoError()
        ordem.cliente_nome = cliente.nome or ordem.cliente_nome
        if not ordem.local:
            ordem.local = cliente.endereco or ''
        latitude, longitude = coordenadas_do_local(cliente, ordem.local)
        if latitude is not None:
            ordem.local_latitude, ordem.local_longitude = latitude, longitude

    def _preparar(self, ordem: OrdemServico) -> OrdemServico:
        self._denormalizar_cliente(ordem)
        ordem.titulo = titulo_ordem(ordem.cliente_nome, ordem.data_prevista, ordem.seq)
        aplicar_totais(ordem)
        if not ordem.duracao_estimada:
            total = sum(servico.minutos_execucao for servico in ordem.servicos)
            if total > 0:
                ordem.duracao_estimada = total + INTERVALO_DESLOCAMENTO_MINUTOS
        resolver_equipe(self.equipe_repo, ordem)
        return ordem


class CriarOrdemServicoUseCase(_BaseOrdemUseCase):
    """Abre uma nova OS com título sequencial e totais calculados."""

    def executar(self, ordem: OrdemServico) -> OrdemServico:
        ordem.seq = self.ordem_repo.proximo_seq()
        self._preparar(ordem)
        criada = self.ordem_repo.salvar(ordem)
        logger.info("OS %06d criada para %s", criada.seq, criada.cliente_nome)
        return criada


class AtualizarOrdemServicoUseCase(_BaseOrdemUseCase):
    """Atualização completa (PUT): reaplica as regras de criação mantendo o seq."""

    def executar(self, ordem_id: int, dados: dict) -> OrdemServico:
        ordem = self.ordem_repo.buscar_por_id(ordem_id)
        if not ordem:
            raise OrdemServicoNaoEncontradaError()

        _aplicar_campos(ordem, dados)
        # Sem valor explícito o total volta a ser calculado pelos serviços
        if 'valor' not in dados:
            ordem.valor = None
        if 'equipe_id' not in dados and 'equipe_nome' in dados:
            ordem.equipe_id = None
        self._preparar(ordem)
        return self.ordem_repo.salvar(ordem)


class AlterarOrdemServicoUseCase(_BaseOrdemUseCase):
    """Atualização parcial (PATCH) de status, datas, equipe, observações e valores."""

    CAMPOS = {
        'status', 'iniciado_em', 'finalizado_em', 'equipe_id', 'equipe_nome',
        'observacoes', 'valor', 'desconto_percentual', 'motivo_cancelamento',
    }

    def executar(self, ordem_id: int, dados: dict, agora: Optional[datetime] = None) -> OrdemServico:
        ordem = self.ordem_repo.buscar_por_id(ordem_id)
        if not ordem:
            raise OrdemServicoNaoEncontradaError()

        _aplicar_campos(ordem, dados, self.CAMPOS)
        if ordem.status == 'em_execucao' and not ordem.iniciado_em:
            ordem.iniciado_em = agora or _agora()
        if ordem.status == 'concluida' and not ordem.finalizado_em:
            ordem.finalizado_em = agora or _agora()
        if 'equipe_nome' in dados and 'equipe_id' not in dados:
            ordem.equipe_id = None
        if 'equipe_id' in dados or 'equipe_nome' in dados:
            resolver_equipe(self.equipe_repo, ordem)
        if 'valor' in dados or 'desconto_percentual' in dados:
            recalcular_valor_final(ordem)
        return self.ordem_repo.salvar(ordem)


class ExcluirOrdemServicoUseCase:
    """Somente OS canceladas e sem lançamentos de caixa podem ser excluídas."""
    def __init__(self, ordem_repo: IOrdemServicoRepository, transacao_repo: ITransacaoCaixaRepository):
        self.ordem_repo = ordem_repo
        self.transacao_repo = transacao_repo

    def executar(self, ordem_id: int):
        ordem = self.ordem_repo.buscar_por_id(ordem_id)
        if not ordem:
            raise OrdemServicoNaoEncontradaError()
        if ordem.status != 'cancelada':
            raise RegraNegocioError(
                "Apenas OS canceladas podem ser excluídas.",
                detail=f"Status atual: {ordem.status}"
            )
        if self.transacao_repo.existe_para_ordem(ordem.id):
            raise RegraNegocioError("Não é possível excluir OS com transações de caixa vinculadas.")
        self.ordem_repo.deletar(ordem.id)


class RegistrarRecebimentoUseCase:
    """
    Marca uma OS concluída como recebida, lançando a entrada correspondente no caixa.
    Abre um caixa automaticamente quando nenhum está aberto.
    """
    DESCRICAO = "Pagamento de Serviço - {cliente} - OS {seq:06d}"
    CATEGORIA = "Pagamento de Serviço"

    def __init__(self, ordem_repo: IOrdemServicoRepository, transacao_repo: ITransacaoCaixaRepository,
                 caixa_repo: ICaixaRepository):
        self.ordem_repo = ordem_repo
        self.transacao_repo = transacao_repo
        self.caixa_repo = caixa_repo

    def executar(
        self,
        ordem_id: int,
        forma_pagamento: Optional[str] = None,
        data: Optional[date] = None,
        observacoes: Optional[str] = None,
        agora: Optional[datetime] = None,
    ) -> Tuple[OrdemServico, Optional[TransacaoCaixa]]:
        agora = agora or _agora()

        ordem = self.ordem_repo.buscar_por_id(ordem_id)
        if not ordem:
            raise OrdemServicoNaoEncontradaError()
        if ordem.status != 'concluida':
            raise RegraNegocioError("Apenas OS concluídas podem ser marcadas como recebidas.")
        if ordem.recebido:
            raise RegraNegocioError("Esta OS já foi marcada como recebida.")
        if not ordem.valor_final or ordem.valor_final <= 0:
            raise RegraNegocioError("A OS não possui valor final para registrar o recebimento.")

        caixa = self.caixa_repo.buscar_aberto()
        if not caixa:
            caixa = self.caixa_repo.salvar(Caixa(
                aberto_em=agora,
                saldo_inicial=Decimal('0'),
                aberto_por="Sistema (auto-abertura)",
                observacoes="Caixa aberto automaticamente ao registrar recebimento de OS.",
            ))
            logger.info("Caixa %s aberto automaticamente para a OS %s", caixa.id, ordem.id)

        ordem.recebido = True
        ordem.recebido_em = agora

        existente = self.transacao_repo.buscar_entrada_da_ordem(ordem.id)
        if existente:
            return self.ordem_repo.salvar(ordem), existente

        if not forma_pagamento:
            raise DadosInvalidosError("Forma de pagamento é obrigatória.")

        transacao = TransacaoCaixa(
            tipo='entrada',
            valor=ordem.valor_final,
            descricao=self.DESCRICAO.format(cliente=ordem.cliente_nome or 'Cliente', seq=ordem.seq or 0),
            data=data or agora.date(),
            cliente_id=ordem.cliente_id,
            cliente_nome=ordem.cliente_nome,
            ordem_id=ordem.id,
            ordem_titulo=ordem.titulo,
            forma_pagamento=forma_pagamento,
            categoria=self.CATEGORIA,
            observacoes=observacoes,
            caixa_id=caixa.id,
        )
        return self.ordem_repo.registrar_recebimento(ordem, transacao)


class RegistrarAssinaturaOrdemUseCase:
    def __init__(self, ordem_repo: IOrdemServicoRepository):
        self.ordem_repo = ordem_repo

    def executar(self, ordem_id: int, assinatura: str, agora: Optional[datetime] = None) -> OrdemServico:
        if not assinatura:
            raise DadosInvalidosError("Assinatura é obrigatória.")
        ordem = self.ordem_repo.buscar_por_id(ordem_id)
        if not ordem:
            raise OrdemServicoNaoEncontradaError()
        ordem.assinatura_cliente = assinatura
        ordem.assinado_em = agora or _agora()
        return self.ordem_repo.salvar(ordem)


class AvaliarOrdemServicoUseCase:
    """Nota de 0 a 5 e comentário do cliente sobre uma OS concluída."""
    def __init__(self, ordem_repo: IOrdemServicoRepository):
        self.ordem_repo = ordem_repo

    def executar(self, ordem_id: int, cliente_id: int, avaliacao: int, feedback: Optional[str] = None,
                 agora: Optional[datetime] = None) -> OrdemServico:
        if avaliacao is None or not 0 <= avaliacao <= 5:
            raise DadosInvalidosError("Avaliação deve ser entre 0 e 5 estrelas")
        ordem = self.ordem_repo.buscar_por_id(ordem_id)
        if not ordem or ordem.cliente_id != cliente_id:
            raise OrdemServicoNaoEncontradaError()
        if ordem.status != 'concluida':
            raise RegraNegocioError("Apenas ordens de serviço concluídas podem receber feedback")

        ordem.avaliacao = avaliacao
        ordem.feedback = (feedback or '').strip()
        ordem.feedback_em = agora or _agora()
        return self.ordem_repo.salvar(ordem)


# ====================================================================
# 5. CASOS DE USO DE ORÇAMENTOS
# ====================================================================

class CriarOrcamentoUseCase:
    def __init__(self, orcamento_repo: IOrcamentoRepository, cliente_repo: IClienteRepository):
        self.orcamento_repo = orcamento_repo
        self.cliente_repo = cliente_repo

    def executar(self, orcamento: Orcamento) -> Orcamento:
        cliente = self.cliente_repo.buscar_por_id(orcamento.cliente_id) if orcamento.cliente_id else None
        if not cliente:
            raise ClienteNaoEncontradoError()

        orcamento.cliente_nome = cliente.nome
        orcamento.seq = self.orcamento_repo.proximo_seq()
        orcamento.titulo = titulo_orcamento(cliente.nome, orcamento.seq)
        aplicar_totais(orcamento)
        return self.orcamento_repo.salvar(orcamento)


class AtualizarOrcamentoUseCase:
    """Atualização parcial; troca de cliente renova nome e título."""

    CAMPOS_DE_VALOR = {'servicos', 'valor', 'desconto_percentual', 'deslocamento_preco'}

    def __init__(self, orcamento_repo: IOrcamentoRepository, cliente_repo: IClienteRepository):
        self.orcamento_repo = orcamento_repo
        self.cliente_repo = cliente_repo

    def executar(self, orcamento_id: int, dados: dict) -> Orcamento:
        orcamento = self.orcamento_repo.buscar_por_id(orcamento_id)
        if not orcamento:
            raise OrcamentoNaoEncontradoError()

        _aplicar_campos(orcamento, dados)

        if 'cliente_id' in dados:
            cliente = self.cliente_repo.buscar_por_id(orcamento.cliente_id)
            if not cliente:
                raise ClienteNaoEncontradoError()
            if cliente.nome != orcamento.cliente_nome:
                orcamento.cliente_nome = cliente.nome
                orcamento.titulo = titulo_orcamento(cliente.nome, orcamento.seq)

        if self.CAMPOS_DE_VALOR & set(dados):
            if 'valor' not in dados:
                orcamento.valor = None
            aplicar_totais(orcamento)
        return self.orcamento_repo.salvar(orcamento)


class ExcluirOrcamentoUseCase:
    def __init__(self, orcamento_repo: IOrcamentoRepository):
        self.orcamento_repo = orcamento_repo

    def executar(self, orcamento_id: int):
        orcamento = self.orcamento_repo.buscar_por_id(orcamento_id)
        if not orcamento:
            raise OrcamentoNaoEncontradoError()
        if orcamento.ordem_id:
            raise RegraNegocioError("Não é possível excluir um orçamento já convertido em OS.")
        self.orcamento_repo.deletar(orcamento.id)


class ConverterOrcamentoUseCase:
    """Transforma um orçamento em OS, copiando serviços, valores e deslocamento."""
    def __init__(self, orcamento_repo: IOrcamentoRepository, ordem_repo: IOrdemServicoRepository,
                 cliente_repo: IClienteRepository, equipe_repo: IEquipeRepository):
        self.orcamento_repo = orcamento_repo
        self.ordem_repo = ordem_repo
        self.cliente_repo = cliente_repo
        self.equipe_repo = equipe_repo

    def executar(
        self,
        orcamento_id: int,
        data_prevista: Optional[datetime],
        equipe_id: Optional[int] = None,
        equipe_nome: Optional[str] = None,
        local: Optional[str] = None,
        observacoes: Optional[str] = None,
    ) -> Tuple[Orcamento, OrdemServico]:
        orcamento = self.orcamento_repo.buscar_por_id(orcamento_id)
        if not orcamento:
            raise OrcamentoNaoEncontradoError()
        if orcamento.status == 'convertido':
            raise RegraNegocioError("Este orçamento já foi convertido em OS.")
        if not equipe_id and not equipe_nome:
            raise DadosInvalidosError("Equipe é obrigatória.")
        if not data_prevista:
            raise DadosInvalidosError("Data prevista é obrigatória.")

        equipe = self.equipe_repo.buscar_por_id(equipe_id) if equipe_id else self.equipe_repo.buscar_por_nome(equipe_nome)
        if not equipe:
            raise RegraNegocioError("Equipe não encontrada.")

        cliente = self.cliente_repo.buscar_por_id(orcamento.cliente_id)
        local = local or (cliente.endereco if cliente else None) or ''
        latitude, longitude = coordenadas_do_local(cliente, local)

        servicos = copy.deepcopy(orcamento.servicos)
        duracao = sum(servico.minutos_execucao for servico in servicos)
        ordem = OrdemServico(
            seq=self.ordem_repo.proximo_seq(),
            cliente_id=orcamento.cliente_id,
            cliente_nome=cliente.nome if cliente else orcamento.cliente_nome,
            local=local,
            local_latitude=latitude,
            local_longitude=longitude,
            equipe_id=equipe.id,
            equipe_nome=equipe.nome,
            status='pendente',
            data_prevista=data_prevista,
            duracao_estimada=(duracao + INTERVALO_DESLOCAMENTO_MINUTOS) if duracao > 0 else None,
            observacoes=observacoes or orcamento.observacoes,
            servicos=servicos,
            valor=orcamento.valor,
            desconto_percentual=orcamento.desconto_percentual,
            desconto_valor=orcamento.desconto_valor,
            valor_final=orcamento.valor_final,
            endereco_selecionado=orcamento.endereco_selecionado,
            deslocamento_km=orcamento.deslocamento_km,
            deslocamento_preco=orcamento.deslocamento_preco,
            deslocamento_descricao=orcamento.deslocamento_descricao,
        )
        ordem.titulo = titulo_ordem(ordem.cliente_nome, ordem.data_prevista, ordem.seq)

        orcamento.status = 'convertido'
        orcamento, ordem = self.orcamento_repo.converter_em_ordem(orcamento, ordem)
        logger.info("Orçamento %s convertido na OS %s", orcamento.id, ordem.id)
        return orcamento, ordem


class GerarLinkPublicoUseCase:
    """Gera (uma única vez) o token público usado no link de aprovação."""
    def __init__(self, orcamento_repo: IOrcamentoRepository):
        self.orcamento_repo = orcamento_repo

    def executar(self, orcamento_id: int) -> Orcamento:
        orcamento = self.orcamento_repo.buscar_por_id(orcamento_id)
        if not orcamento:
            raise OrcamentoNaoEncontradoError()
        if not orcamento.token_publico:
            orcamento.token_publico = secrets.token_hex(32)
            orcamento = self.orcamento_repo.salvar(orcamento)
        return orcamento


class ResponderOrcamentoUseCase:
    """Aprovação (com assinatura) ou rejeição do orçamento pelo cliente."""
    def __init__(self, orcamento_repo: IOrcamentoRepository):
        self.orcamento_repo = orcamento_repo

    def _pelo_token(self, token: str) -> Orcamento:
        orcamento = self.orcamento_repo.buscar_por_token(token)
        if not orcamento:
            raise OrcamentoNaoEncontradoError()
        return orcamento

    def _do_cliente(self, orcamento_id: int, cliente_id: int) -> Orcamento:
        orcamento = self.orcamento_repo.buscar_por_id(orcamento_id)
        if not orcamento or orcamento.cliente_id != cliente_id:
            raise OrcamentoNaoEncontradoError()
        return orcamento

    def _aprovar(self, orcamento: Orcamento, assinatura: str, agora: datetime) -> Orcamento:
        if not assinatura:
            raise DadosInvalidosError("Assinatura é obrigatória.")
        orcamento.aprovado = True
        orcamento.aprovado_em = agora
        orcamento.assinatura_cliente = assinatura
        orcamento.assinado_em = agora
        orcamento.status = 'aprovado'
        orcamento.rejeitado = False
        orcamento.rejeitado_em = None
        orcamento.motivo_rejeicao = None
        return self.orcamento_repo.salvar(orcamento)

    def _rejeitar(self, orcamento: Orcamento, motivo: str, agora: datetime) -> Orcamento:
        if not motivo:
            raise DadosInvalidosError("Motivo da rejeição é obrigatório.")
        orcamento.rejeitado = True
        orcamento.rejeitado_em = agora
        orcamento.motivo_rejeicao = motivo
        orcamento.status = 'rejeitado'
        return self.orcamento_repo.salvar(orcamento)

    def aprovar_publico(self, token: str, assinatura: str, agora: Optional[datetime] = None) -> Orcamento:
        orcamento = self._pelo_token(token)
        if orcamento.processado:
            raise RegraNegocioError("Este orçamento já foi processado.")
        return self._aprovar(orcamento, assinatura, agora or _agora())

    def rejeitar_publico(self, token: str, motivo: str, agora: Optional[datetime] = None) -> Orcamento:
        orcamento = self._pelo_token(token)
        if orcamento.processado:
            raise RegraNegocioError("Este orçamento já foi processado.")
        return self._rejeitar(orcamento, motivo, agora or _agora())

    def aprovar_pelo_cliente(self, orcamento_id: int, cliente_id: int, assinatura: str,
                             agora: Optional[datetime] = None) -> Orcamento:
        orcamento = self._do_cliente(orcamento_id, cliente_id)
        # Um orçamento rejeitado ainda pode ser aprovado pelo portal
        if orcamento.aprovado:
            raise RegraNegocioError("Este orçamento já foi aprovado.")
        return self._aprovar(orcamento, assinatura, agora or _agora())

    def rejeitar_pelo_cliente(self, orcamento_id: int, cliente_id: int, motivo: str,
                              agora: Optional[datetime] = None) -> Orcamento:
        orcamento = self._do_cliente(orcamento_id, cliente_id)
        if orcamento.processado:
            raise RegraNegocioError("Este orçamento já foi processado.")
        return self._rejeitar(orcamento, motivo, agora or _agora())


# ====================================================================
# 6. CASOS DE USO DO CAIXA
# ====================================================================

class RegistrarTransacaoUseCase:
    """Lança uma transação no caixa aberto, copiando nomes do cliente e da OS."""
    def __init__(self, transacao_repo: ITransacaoCaixaRepository, caixa_repo: ICaixaRepository,
                 cliente_repo: IClienteRepository, ordem_repo: IOrdemServicoRepository):
        self.transacao_repo = transacao_repo
        self.caixa_repo = caixa_repo
        self.cliente_repo = cliente_repo
        self.ordem_repo = ordem_repo

    def executar(self, transacao: TransacaoCaixa) -> TransacaoCaixa:
        caixa = self.caixa_repo.buscar_aberto()
        if not caixa:
            raise RegraNegocioError("Nenhum caixa aberto. Abra o caixa antes de registrar transações.")
        transacao.caixa_id = caixa.id

        if transacao.ordem_id:
            ordem = self.ordem_repo.buscar_por_id(transacao.ordem_id)
            if not ordem:
                raise OrdemServicoNaoEncontradaError()
            transacao.ordem_titulo = ordem.titulo
            if not transacao.cliente_id and ordem.cliente_id:
                transacao.cliente_id = ordem.cliente_id
                transacao.cliente_nome = ordem.cliente_nome
            if transacao.tipo == 'entrada' and self.transacao_repo.buscar_entrada_da_ordem(ordem.id):
                raise TransacaoDuplicadaError()

        if transacao.cliente_id and not transacao.cliente_nome:
            cliente = self.cliente_repo.buscar_por_id(transacao.cliente_id)
            if not cliente:
                raise ClienteNaoEncontradoError()
            transacao.cliente_nome = cliente.nome

        return self.transacao_repo.salvar(transacao)


class _BaseCaixaUseCase:
    def __init__(self, caixa_repo: ICaixaRepository, transacao_repo: ITransacaoCaixaRepository):
        self.caixa_repo = caixa_repo
        self.transacao_repo = transacao_repo

    def _saldo(self, caixa: Caixa) -> Decimal:
        somas = self.transacao_repo.somar_por_tipo(caixa.id)
        entradas = somas.get('entrada') or Decimal('0')
        saidas = somas.get('saida') or Decimal('0')
        return _centavos(Decimal(str(caixa.saldo_inicial)) + entradas - saidas)


class AbrirCaixaUseCase(_BaseCaixaUseCase):

    def executar(self, saldo_inicial: Decimal = Decimal('0'), aberto_por: Optional[str] = None,
                 observacoes: Optional[str] = None, agora: Optional[datetime] = None) -> Caixa:
        if self.caixa_repo.buscar_aberto():
            raise ConflitoError("Já existe um caixa aberto.")
        if saldo_inicial is not None and saldo_inicial < 0:
            raise DadosInvalidosError("O saldo inicial não pode ser negativo.")
        caixa = Caixa(
            aberto_em=agora or _agora(),
            saldo_inicial=saldo_inicial or Decimal('0'),
            aberto_por=aberto_por,
            observacoes=observacoes,
        )
        return self.caixa_repo.salvar(caixa)


class FecharCaixaUseCase(_BaseCaixaUseCase):
    """Fecha o caixa aberto; sem saldo informado, usa o saldo calculado."""

    def executar(self, saldo_final: Optional[Decimal] = None, fechado_por: Optional[str] = None,
                 observacoes: Optional[str] = None, agora: Optional[datetime] = None) -> Caixa:
        caixa = self.caixa_repo.buscar_aberto()
        if not caixa:
            raise ItemNaoEncontradoError("Nenhum caixa aberto.")

        calculado = self._saldo(caixa)
        caixa.status = 'fechado'
        caixa.fechado_em = agora or _agora()
        caixa.fechado_por = fechado_por
        caixa.saldo_final = saldo_final if saldo_final is not None else calculado
        if observacoes:
            caixa.observacoes = observacoes
        caixa = self.caixa_repo.salvar(caixa)
        caixa.saldo_atual = calculado
        return caixa


class ConsultarCaixaAtualUseCase(_BaseCaixaUseCase):
    """Caixa aberto com o saldo corrente; senão o último fechado; senão None."""

    def executar(self) -> Optional[Caixa]:
        caixa = self.caixa_repo.buscar_aberto()
        if caixa:
            caixa.saldo_atual = self._saldo(caixa)
            return caixa
        caixa = self.caixa_repo.buscar_ultimo_fechado()
        if caixa:
            caixa.saldo_atual = caixa.saldo_final
        return caixa


# ====================================================================
# 7. DESLOCAMENTO (DISTÂNCIA E TABELA DE PREÇOS)
# ====================================================================

def resolver_preco_deslocamento(distancia_km: int, regras: List[RegraDeslocamento]) -> CotacaoDeslocamento:
    """
    Primeira regra (em ordem crescente) sem limite ou com limite >= distância.
    Regras de ida e volta cobram em dobro.
    """
    for regra in sorted(regras, key=lambda r: r.ordem):
        if regra.ate_km is not None and distancia_km > regra.ate_km:
            continue

        if regra.tipo == 'per_km':
            preco_km = Decimal(str(regra.preco_por_km or 0))
            preco = Decimal(distancia_km) * preco_km
            descricao = f"{distancia_km}km × R$ {preco_km:.2f}/km"
        else:
            preco = Decimal(str(regra.preco_fixo or 0))
            descricao = regra.descricao or "Taxa fixa"

        if regra.ida_e_volta:
            preco = preco * 2
            descricao = f"{descricao} (ida e volta)"
        return CotacaoDeslocamento(
            distancia_km=distancia_km,
            preco=_centavos(preco),
            descricao=descricao,
            regra_id=regra.id,
        )

    return CotacaoDeslocamento(
        distancia_km=distancia_km,
        preco=Decimal('0.00'),
        descricao=f"{distancia_km}km (sem regra de preço configurada)",
    )


class CalcularDeslocamentoUseCase:
    def __init__(self, configuracao_repo: IConfiguracaoRepository, regra_repo: IRegraDeslocamentoRepository,
                 distancia_gateway: IDistanciaGateway):
        self.configuracao_repo = configuracao_repo
        self.regra_repo = regra_repo
        self.distancia_gateway = distancia_gateway

    def executar(self, endereco_cliente: str) -> CotacaoDeslocamento:
        if not endereco_cliente:
            raise DadosInvalidosError("Endereço do cliente é obrigatório.")
        configuracao = self.configuracao_repo.obter()
        if not configuracao or not configuracao.endereco_sede:
            raise RegraNegocioError("Endereço da empresa não configurado. Configure em Configurações.")

        distancia = self.distancia_gateway.calcular(configuracao.endereco_sede, endereco_cliente)
        # Arredondamento comercial: 12.5 km -> 13 km
        km = int((Decimal(distancia.metros) / 1000).quantize(Decimal('1'), rounding=ROUND_HALF_UP))

        cotacao = resolver_preco_deslocamento(km, self.regra_repo.listar_ordenadas())
        cotacao.duracao_texto = distancia.duracao_texto
        cotacao.distancia_texto = distancia.distancia_texto
        cotacao.duracao_segundos = distancia.duracao_segundos
        cotacao.endereco_empresa = configuracao.endereco_sede
        cotacao.endereco_cliente = endereco_cliente
        return cotacao


# ====================================================================
# 8. SOLICITAÇÕES DE ORÇAMENTO (LEADS DO SITE)
# ====================================================================

MAPA_SOLO_CATALOGO = {
    'terra_comum': 'misturado',
    'argiloso': 'argiloso',
    'arenoso': 'arenoso',
    'rochoso': 'rochoso',
    'nao_sei': 'misturado',
}

MAPA_ACESSO_CATALOGO = {
    'facil': 'livre',
    'medio': 'limitado',
    'dificil': 'restrito',
}


def normalizar_diametro(diametro: Optional[str]) -> Optional[str]:
    """Garante o sufixo "cm" ("30" -> "30cm")."""
    if diametro and 'cm' not in diametro:
        digitos = re.sub(r'\D', '', diametro)
        if digitos:
            return f"{digitos}cm"
    return diametro


def buscar_cliente_existente(cliente_repo: IClienteRepository, solicitacao: SolicitacaoOrcamento) -> Optional[Cliente]:
    """Procura por telefone, depois e-mail, depois nome + telefone."""
    cliente = None
    if solicitacao.telefone:
        cliente = cliente_repo.buscar_por_telefone(solicitacao.telefone)
    if not cliente and solicitacao.email:
        cliente = cliente_repo.buscar_por_email(solicitacao.email.lower())
    if not cliente and solicitacao.telefone and solicitacao.nome:
        cliente = cliente_repo.buscar_por_nome_e_telefone(solicitacao.nome, solicitacao.telefone)
    return cliente


class CriarSolicitacaoUseCase:
    def __init__(self, solicitacao_repo: ISolicitacaoOrcamentoRepository):
        self.solicitacao_repo = solicitacao_repo

    def executar(self, solicitacao: SolicitacaoOrcamento) -> SolicitacaoOrcamento:
        if not solicitacao.servicos:
            raise DadosInvalidosError("Informe ao menos um serviço.")
        solicitacao.seq = self.solicitacao_repo.proximo_seq()
        solicitacao.status = 'pendente'
        solicitacao.arquivado = False
        criada = self.solicitacao_repo.salvar(solicitacao)
        logger.info("Nova solicitação de orçamento #%s (%s)", criada.seq, criada.origem)
        return criada


class AtualizarSolicitacaoUseCase:
    CAMPOS = {'status', 'observacoes', 'arquivado'}

    def __init__(self, solicitacao_repo: ISolicitacaoOrcamentoRepository):
        self.solicitacao_repo = solicitacao_repo

    def executar(self, solicitacao_id: int, dados: dict, agora: Optional[datetime] = None) -> SolicitacaoOrcamento:
        solicitacao = self.solicitacao_repo.buscar_por_id(solicitacao_id)
        if not solicitacao:
            raise SolicitacaoNaoEncontradaError()
        _aplicar_campos(solicitacao, dados, self.CAMPOS)
        if 'arquivado' in dados:
            solicitacao.arquivado_em = (agora or _agora()) if dados['arquivado'] else None
        return self.solicitacao_repo.salvar(solicitacao)


class VerificarClienteSolicitacaoUseCase:
    def __init__(self, solicitacao_repo: ISolicitacaoOrcamentoRepository, cliente_repo: IClienteRepository):
        self.solicitacao_repo = solicitacao_repo
        self.cliente_repo = cliente_repo

    def executar(self, solicitacao_id: int) -> Optional[Cliente]:
        solicitacao = self.solicitacao_repo.buscar_por_id(solicitacao_id)
        if not solicitacao:
            raise SolicitacaoNaoEncontradaError()
        return buscar_cliente_existente(self.cliente_repo, solicitacao)


class _BaseConversaoSolicitacao:
    def __init__(self, solicitacao_repo: ISolicitacaoOrcamentoRepository, cliente_repo: IClienteRepository,
                 orcamento_repo: IOrcamentoRepository, catalogo_repo: ICatalogoRepository):
        self.solicitacao_repo = solicitacao_repo
        self.cliente_repo = cliente_repo
        self.orcamento_repo = orcamento_repo
        self.catalogo_repo = catalogo_repo

    def _buscar_pendente(self, solicitacao_id: int) -> SolicitacaoOrcamento:
        solicitacao = self.solicitacao_repo.buscar_por_id(solicitacao_id)
        if not solicitacao:
            raise SolicitacaoNaoEncontradaError()
        if solicitacao.status == 'convertido':
            raise RegraNegocioError("Esta solicitação já foi convertida.")
        return solicitacao

    def _linha_orcamento(self, solicitacao: SolicitacaoOrcamento, pedido) -> LinhaServico:
        diametro = normalizar_diametro(pedido.diametro)
        profundidade = pedido.profundidade_outro if pedido.profundidade == 'outro' else pedido.profundidade
        quantidade = pedido.quantidade_outro if pedido.quantidade == 'outro' else pedido.quantidade

        catalogo_id = None
        nome = pedido.servico_nome
        preco_base = Decimal('0')
        tempo = 0.0
        valor = Decimal('0')

        item = self.catalogo_repo.buscar_por_id(pedido.servico_id) if pedido.servico_id else None
        if item:
            catalogo_id = item.id
            nome = item.nome
            digitos = re.sub(r'\D', '', diametro or '')
            if digitos and solicitacao.tipo_solo and solicitacao.acesso and quantidade and profundidade:
                variacao = item.buscar_variacao(
                    int(digitos),
                    MAPA_SOLO_CATALOGO.get(solicitacao.tipo_solo, 'outro'),
                    MAPA_ACESSO_CATALOGO.get(solicitacao.acesso, 'livre'),
                )
                if variacao:
                    preco_base = Decimal(str(variacao.preco or 0))
                    tempo = float(variacao.tempo_execucao or 0)
                    metros = Decimal(str(ler_decimal(quantidade, 0))) * Decimal(str(ler_decimal(profundidade, 0)))
                    valor = _centavos(metros * preco_base)

        if not nome:
            nome = pedido.tipo_outro if pedido.tipo == 'outro' and pedido.tipo_outro else pedido.tipo
        return LinhaServico(
            servico=nome or 'Serviço',
            catalogo_id=catalogo_id,
            tipo_local=solicitacao.tipo_local,
            tipo_solo=solicitacao.tipo_solo,
            acesso=solicitacao.acesso,
            diametro=diametro,
            profundidade=profundidade,
            quantidade=quantidade,
            preco_base=preco_base if preco_base > 0 else None,
            tempo_execucao=tempo if tempo > 0 else None,
            valor=valor if valor > 0 else None,
            valor_final=valor if valor > 0 else None,
        )

    def _criar_orcamento(self, solicitacao: SolicitacaoOrcamento, cliente: Cliente,
                         observacoes: Optional[str]) -> Orcamento:
        linhas = [self._linha_orcamento(solicitacao, pedido) for pedido in solicitacao.servicos]
        total = sum((linha.valor or Decimal('0') for linha in linhas), Decimal('0'))
        seq = self.orcamento_repo.proximo_seq()
        orcamento = Orcamento(
            cliente_id=cliente.id,
            cliente_nome=cliente.nome,
            seq=seq,
            titulo=titulo_orcamento(cliente.nome, seq),
            servicos=linhas,
            valor=total if total > 0 else None,
            valor_final=total if total > 0 else None,
            status='pendente',
            observacoes=observacoes or solicitacao.diagnostico_spt,
        )
        return self.orcamento_repo.salvar(orcamento)

    def _finalizar(self, solicitacao, cliente, orcamento, observacoes) -> SolicitacaoOrcamento:
        solicitacao.status = 'convertido'
        solicitacao.cliente_id = cliente.id
        solicitacao.orcamento_id = orcamento.id if orcamento else None
        if observacoes:
            solicitacao.observacoes = observacoes
        return self.solicitacao_repo.salvar(solicitacao)


class ConverterSolicitacaoUseCase(_BaseConversaoSolicitacao):
    """
    Converte o lead em cliente (reaproveitando um cadastro existente quando
    possível) e, opcionalmente, em um orçamento precificado pelo catálogo.
    """

    def executar(self, solicitacao_id: int, criar_orcamento: bool = False,
                 observacoes: Optional[str] = None, agora: Optional[datetime] = None):
        agora = agora or _agora()
        solicitacao = self._buscar_pendente(solicitacao_id)

        cliente = buscar_cliente_existente(self.cliente_repo, solicitacao)
        if cliente:
            cliente = self._completar_cliente(cliente, solicitacao)
        else:
            cliente = self._novo_cliente(solicitacao, agora)

        orcamento = self._criar_orcamento(solicitacao, cliente, observacoes) if criar_orcamento else None
        solicitacao = self._finalizar(solicitacao, cliente, orcamento, observacoes)
        return solicitacao, cliente, orcamento

    def _endereco_da_solicitacao(self, solicitacao: SolicitacaoOrcamento) -> Optional[EnderecoCliente]:
        if not solicitacao.endereco and solicitacao.latitude is None and solicitacao.longitude is None:
            return None
        return EnderecoCliente(
            endereco=solicitacao.endereco,
            latitude=solicitacao.latitude,
            longitude=solicitacao.longitude,
        )

    def _novo_cliente(self, solicitacao: SolicitacaoOrcamento, agora: datetime) -> Cliente:
        # Documento provisório: o índice (tipo_pessoa, documento) não aceita repetição
        documento = f"TEMP_{int(agora.timestamp() * 1000)}_{secrets.token_hex(4)}"
        endereco = self._endereco_da_solicitacao(solicitacao)
        cliente = Cliente(
            nome=solicitacao.nome,
            telefone=solicitacao.telefone,
            email=solicitacao.email,
            tipo_pessoa='cpf',
            documento=documento,
            endereco=solicitacao.endereco,
            enderecos=[endereco] if endereco else [],
        )
        return self.cliente_repo.salvar(normalizar_cliente(cliente))

    def _completar_cliente(self, cliente: Cliente, solicitacao: SolicitacaoOrcamento) -> Cliente:
        alterado = False
        if solicitacao.nome and not cliente.nome:
            cliente.nome = solicitacao.nome
            alterado = True
        if solicitacao.email and not cliente.email:
            cliente.email = solicitacao.email
            alterado = True
        if solicitacao.endereco and not cliente.endereco:
            cliente.endereco = solicitacao.endereco
            alterado = True

        novo = self._endereco_da_solicitacao(solicitacao)
        if novo and (solicitacao.endereco or (solicitacao.latitude and solicitacao.longitude)):
            ja_existe = any(
                (solicitacao.endereco and e.endereco == solicitacao.endereco)
                or (e.latitude == solicitacao.latitude and e.longitude == solicitacao.longitude
                    and e.latitude is not None)
                for e in cliente.enderecos
            )
            if not ja_existe:
                cliente.enderecos.append(novo)
                alterado = True

        if alterado:
            cliente = self.cliente_repo.salvar(normalizar_cliente(cliente))
        return cliente


class ConverterSolicitacaoEmOrcamentoUseCase(_BaseConversaoSolicitacao):
    """Gera o orçamento do lead para um cliente já cadastrado."""

    def executar(self, solicitacao_id: int, cliente_id: int, observacoes: Optional[str] = None):
        solicitacao = self._buscar_pendente(solicitacao_id)
        cliente = self.cliente_repo.buscar_por_id(cliente_id)
        if not cliente:
            raise ClienteNaoEncontradoError()

        orcamento = self._criar_orcamento(solicitacao, cliente, observacoes)
        solicitacao = self._finalizar(solicitacao, cliente, orcamento, observacoes)
        return solicitacao, cliente, orcamento


# ====================================================================
# 9. CAPTURA DE LOCALIZAÇÃO
# ====================================================================

class GerarCapturaLocalizacaoUseCase:
    def __init__(self, captura_repo: ICapturaLocalizacaoRepository, cliente_repo: IClienteRepository,
                 validade_horas: int = 24):
        self.captura_repo = captura_repo
        self.cliente_repo = cliente_repo
        self.validade_horas = validade_horas

    def executar(self, cliente_id: int, indice_endereco: int, descricao: Optional[str] = None,
                 tipo_recurso: Optional[str] = None, agora: Optional[datetime] = None) -> CapturaLocalizacao:
        agora = agora or _agora()
        if indice_endereco is None or indice_endereco < 0:
            raise DadosInvalidosError("Índice de endereço inválido.")
        if not self.cliente_repo.buscar_por_id(cliente_id):
            raise ClienteNaoEncontradoError()

        # Equivalente ao índice TTL: links vencidos são descartados
        self.captura_repo.remover_expiradas(agora)
        captura = CapturaLocalizacao(
            token=secrets.token_hex(32),
            cliente_id=cliente_id,
            indice_endereco=indice_endereco,
            descricao=descricao,
            tipo_recurso=tipo_recurso,
            expira_em=agora + timedelta(hours=self.validade_horas),
        )
        return self.captura_repo.salvar(captura)


class RegistrarCapturaUseCase:
    """Recebe as coordenadas do celular do cliente e atualiza o endereço da obra."""
    def __init__(self, captura_repo: ICapturaLocalizacaoRepository, cliente_repo: IClienteRepository,
                 geocodificador: IGeocodificadorGateway):
        self.captura_repo = captura_repo
        self.cliente_repo = cliente_repo
        self.geocodificador = geocodificador

    def executar(self, token: str, latitude: float, longitude: float,
                 agora: Optional[datetime] = None) -> CapturaLocalizacao:
        agora = agora or _agora()
        captura = self.captura_repo.buscar_valida(token, agora)
        if not captura:
            raise ItemNaoEncontradoError("Link inválido ou expirado.")

        try:
            geo = self.geocodificador.reverso(latitude, longitude)
        except ServicoExternoError as erro:
            # A captura vale mesmo sem o endereço por extenso
            logger.warning("Geocodificação reversa falhou para o token %s: %s", token[:8], erro)
            geo = None

        captura.latitude = latitude
        captura.longitude = longitude
        captura.status = 'captured'
        captura.capturado_em = agora
        if geo:
            for campo in ('endereco', 'rua', 'numero', 'bairro', 'cidade', 'estado', 'cep'):
                setattr(captura, campo, getattr(geo, campo))

        # Um novo envio com o link ainda válido substitui a captura anterior.
        # Índice que o cliente não tem mais só fica registrado na captura.
        cliente = self.cliente_repo.buscar_por_id(captura.cliente_id)
        if cliente and 0 <= captura.indice_endereco < len(cliente.enderecos):
            endereco = cliente.enderecos[captura.indice_endereco]
            endereco.latitude = latitude
            endereco.longitude = longitude
            if geo:
                for campo in ('endereco', 'rua', 'numero', 'bairro', 'cidade', 'estado', 'cep'):
                    valor = getattr(geo, campo)
                    if valor:
                        setattr(endereco, campo, valor)
            self.cliente_repo.salvar(normalizar_cliente(cliente))
        elif cliente:
            logger.info("Captura %s aponta para o endereço %s inexistente no cliente %s",
                        token[:8], captura.indice_endereco, cliente.id)

        return self.captura_repo.salvar(captura)


class ConsultarCapturaUseCase:
    def __init__(self, captura_repo: ICapturaLocalizacaoRepository):
        self.captura_repo = captura_repo

    def executar(self, token: str, agora: Optional[datetime] = None) -> CapturaLocalizacao:
        captura = self.captura_repo.buscar_por_token(token)
        if not captura:
            raise ItemNaoEncontradoError("Link não encontrado.")
        if captura.expira_em <= (agora or _agora()):
            raise RegraNegocioError("Link expirado.")
        return captura


# ====================================================================
# 10. PAINEL DE OPERAÇÕES DAS EQUIPES
# ====================================================================

class _BaseOperacaoUseCase:
    def __init__(self, equipe_repo: IEquipeRepository, ordem_repo: IOrdemServicoRepository):
        self.equipe_repo = equipe_repo
        self.ordem_repo = ordem_repo

    def _autenticar(self, equipe_id: int, senha: Optional[str]) -> Equipe:
        equipe = self.equipe_repo.buscar_por_id(equipe_id)
        if not equipe:
            raise EquipeNaoEncontradaError()
        if not equipe.senha_operacao:
            raise AcessoNegadoError("Senha de operação não configurada para esta equipe.")
        if not senha or not hmac.compare_digest(str(senha), str(equipe.senha_operacao)):
            raise CredenciaisInvalidasError("Senha incorreta.")
        return equipe


class AcessarPainelEquipeUseCase(_BaseOperacaoUseCase):

    def executar(self, equipe_id: int, senha: Optional[str]) -> Tuple[Equipe, List[OrdemServico]]:
        equipe = self._autenticar(equipe_id, senha)
        return equipe, self.ordem_repo.listar_da_equipe(equipe)


class AtualizarOrdemPelaEquipeUseCase(_BaseOperacaoUseCase):
    """A equipe atualiza status e horários das próprias OS."""

    CAMPOS = {'status', 'iniciado_em', 'finalizado_em'}

    def executar(self, ordem_id: int, equipe_id: int, senha: Optional[str], dados: dict,
                 agora: Optional[datetime] = None) -> OrdemServico:
        equipe = self._autenticar(equipe_id, senha)
        ordem = self.ordem_repo.buscar_por_id(ordem_id)
        if not ordem:
            raise OrdemServicoNaoEncontradaError()
        if ordem.equipe_id != equipe.id and ordem.equipe_nome != equipe.nome:
            raise AcessoNegadoError("Esta OS não pertence à equipe.")

        _aplicar_campos(ordem, dados, self.CAMPOS)
        agora = agora or _agora()
        if ordem.status == 'em_execucao' and not ordem.iniciado_em:
            ordem.iniciado_em = agora
        if ordem.status == 'concluida' and not ordem.finalizado_em:
            ordem.finalizado_em = agora
        return self.ordem_repo.salvar(ordem)
