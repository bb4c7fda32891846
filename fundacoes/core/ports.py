# fundacoes/core/ports.py
"""
Definição das Portas (Interfaces/Protocolos) da Arquitetura Limpa.

Estes protocolos definem o contrato que a camada de Infraestrutura (Repositórios, Gateways)
DEVE seguir para se conectar à camada Core (Casos de Uso).
"""

from typing import Protocol, List, Optional, Dict, Tuple
from abc import abstractmethod
from datetime import date, datetime
from decimal import Decimal

from fundacoes.core.entities import (
    Cliente, OrdemServico, Orcamento, Equipe, TransacaoCaixa, Caixa, ItemCatalogo,
    RegraDeslocamento, Configuracao, SolicitacaoOrcamento, CapturaLocalizacao,
    Distancia, EnderecoGeocodificado,
)


# ====================================================================
# 1. REPOSITÓRIOS (Portas de Persistência)
# ====================================================================

class IClienteRepository(Protocol):
    """Protocolo para a persistência e busca de Clientes."""

    @abstractmethod
    def buscar_por_id(self, cliente_id: int) -> Optional[Cliente]: ...

    @abstractmethod
    def existe_documento(self, tipo_pessoa: str, documento: str, excluir_id: Optional[int] = None) -> bool: ...

    @abstractmethod
    def buscar_por_telefone(self, telefone: str) -> Optional[Cliente]: ...

    @abstractmethod
    def buscar_por_email(self, email: str) -> Optional[Cliente]: ...

    @abstractmethod
    def buscar_por_nome_e_telefone(self, nome: str, telefone: str) -> Optional[Cliente]: ...

    @abstractmethod
    def salvar(self, cliente: Cliente) -> Cliente: ...


class IOrdemServicoRepository(Protocol):
    """Protocolo para as Ordens de Serviço."""

    @abstractmethod
    def buscar_por_id(self, ordem_id: int) -> Optional[OrdemServico]: ...

    @abstractmethod
    def proximo_seq(self) -> int: ...

    @abstractmethod
    def listar_agendadas_no_dia(self, equipe: str, dia: date) -> List[OrdemServico]:
        """OS da equipe (nome ou id) no dia, exceto canceladas e concluídas."""
        ...

    @abstractmethod
    def listar_da_equipe(self, equipe: Equipe) -> List[OrdemServico]: ...

    @abstractmethod
    def salvar(self, ordem: OrdemServico) -> OrdemServico: ...

    @abstractmethod
    def deletar(self, ordem_id: int): ...

    @abstractmethod
    def registrar_recebimento(
        self, ordem: OrdemServico, transacao: TransacaoCaixa
    ) -> Tuple[OrdemServico, TransacaoCaixa]:
        """
        Insere a entrada no caixa e marca a OS como recebida em uma única transação atômica.
        """
        ...


class IOrcamentoRepository(Protocol):
    """Protocolo para os Orçamentos."""

    @abstractmethod
    def buscar_por_id(self, orcamento_id: int) -> Optional[Orcamento]: ...

    @abstractmethod
    def buscar_por_token(self, token: str) -> Optional[Orcamento]: ...

    @abstractmethod
    def proximo_seq(self) -> int: ...

    @abstractmethod
    def salvar(self, orcamento: Orcamento) -> Orcamento: ...

    @abstractmethod
    def deletar(self, orcamento_id: int): ...

    @abstractmethod
    def converter_em_ordem(
        self, orcamento: Orcamento, ordem: OrdemServico
    ) -> Tuple[Orcamento, OrdemServico]:
        """Cria a OS e marca o orçamento como convertido de forma atômica."""
        ...


class IEquipeRepository(Protocol):

    @abstractmethod
    def buscar_por_id(self, equipe_id: int) -> Optional[Equipe]: ...

    @abstractmethod
    def buscar_por_nome(self, nome: str) -> Optional[Equipe]: ...


class ITransacaoCaixaRepository(Protocol):
    """Protocolo para os lançamentos do caixa."""

    @abstractmethod
    def existe_para_ordem(self, ordem_id: int) -> bool: ...

    @abstractmethod
    def buscar_entrada_da_ordem(self, ordem_id: int) -> Optional[TransacaoCaixa]: ...

    @abstractmethod
    def somar_por_tipo(self, caixa_id: int) -> Dict[str, Decimal]: ...

    @abstractmethod
    def salvar(self, transacao: TransacaoCaixa) -> TransacaoCaixa: ...


class ICaixaRepository(Protocol):

    @abstractmethod
    def buscar_aberto(self) -> Optional[Caixa]: ...

    @abstractmethod
    def buscar_ultimo_fechado(self) -> Optional[Caixa]: ...

    @abstractmethod
    def salvar(self, caixa: Caixa) -> Caixa: ...


class ICatalogoRepository(Protocol):

    @abstractmethod
    def buscar_por_id(self, item_id: int) -> Optional[ItemCatalogo]: ...


class IRegraDeslocamentoRepository(Protocol):

    @abstractmethod
    def listar_ordenadas(self) -> List[RegraDeslocamento]: ...


class IConfiguracaoRepository(Protocol):

    @abstractmethod
    def obter(self) -> Configuracao:
        """Retorna o registro único de configurações, criando-o se necessário."""
        ...


class ISolicitacaoOrcamentoRepository(Protocol):
    """Protocolo para os leads do formulário público."""

    @abstractmethod
    def buscar_por_id(self, solicitacao_id: int) -> Optional[SolicitacaoOrcamento]: ...

    @abstractmethod
    def proximo_seq(self) -> int: ...

    @abstractmethod
    def salvar(self, solicitacao: SolicitacaoOrcamento) -> SolicitacaoOrcamento: ...


class ICapturaLocalizacaoRepository(Protocol):

    @abstractmethod
    def buscar_por_token(self, token: str) -> Optional[CapturaLocalizacao]: ...

    @abstractmethod
    def buscar_valida(self, token: str, agora: datetime) -> Optional[CapturaLocalizacao]:
        """Somente tokens ainda não expirados."""
        ...

    @abstractmethod
    def salvar(self, captura: CapturaLocalizacao) -> CapturaLocalizacao: ...

    @abstractmethod
    def remover_expiradas(self, agora: datetime) -> int: ...


# ====================================================================
# 2. GATEWAYS (Portas de Serviços Externos)
# ====================================================================

class IDistanciaGateway(Protocol):
    """Protocolo para o serviço de rotas (distância de carro entre dois endereços)."""

    @abstractmethod
    def calcular(self, origem: str, destino: str) -> Distancia: ...


class IGeocodificadorGateway(Protocol):
    """Protocolo para a geocodificação reversa (coordenadas -> endereço)."""

    @abstractmethod
    def reverso(self, latitude: float, longitude: float) -> EnderecoGeocodificado: ...
