# fundacoes/core/dependency_injection.py
"""
Módulo de Injeção de Dependência (DI).
Responsável por instanciar os Use Cases com suas dependências de Repositórios/Gateways
concretos da camada de Infraestrutura.
"""
from django.conf import settings

from fundacoes.infrastructure.repositories import (
    ClienteRepositoryDjango,
    OrdemServicoRepositoryDjango,
    OrcamentoRepositoryDjango,
    EquipeRepositoryDjango,
    TransacaoCaixaRepositoryDjango,
    CaixaRepositoryDjango,
    CatalogoRepositoryDjango,
    RegraDeslocamentoRepositoryDjango,
    ConfiguracaoRepositoryDjango,
    SolicitacaoOrcamentoRepositoryDjango,
    CapturaLocalizacaoRepositoryDjango,
)
from fundacoes.infrastructure.gateways import GoogleDistanciaGateway, NominatimGeocodificadorGateway
from .use_cases import (
    CadastrarClienteUseCase,
    AtualizarClienteUseCase,
    AtualizarLocalizacaoClienteUseCase,
    GerenciarEnderecosClienteUseCase,
    CalcularDisponibilidadeUseCase,
    CriarOrdemServicoUseCase,
    AtualizarOrdemServicoUseCase,
    AlterarOrdemServicoUseCase,
    ExcluirOrdemServicoUseCase,
    RegistrarRecebimentoUseCase,
    RegistrarAssinaturaOrdemUseCase,
    AvaliarOrdemServicoUseCase,
    CriarOrcamentoUseCase,
    AtualizarOrcamentoUseCase,
    ExcluirOrcamentoUseCase,
    ConverterOrcamentoUseCase,
    GerarLinkPublicoUseCase,
    ResponderOrcamentoUseCase,
    RegistrarTransacaoUseCase,
    AbrirCaixaUseCase,
    FecharCaixaUseCase,
    ConsultarCaixaAtualUseCase,
    CalcularDeslocamentoUseCase,
    CriarSolicitacaoUseCase,
    AtualizarSolicitacaoUseCase,
    VerificarClienteSolicitacaoUseCase,
    ConverterSolicitacaoUseCase,
    ConverterSolicitacaoEmOrcamentoUseCase,
    GerarCapturaLocalizacaoUseCase,
    RegistrarCapturaUseCase,
    ConsultarCapturaUseCase,
    AcessarPainelEquipeUseCase,
    AtualizarOrdemPelaEquipeUseCase,
)

# Repositórios e Gateways Concretos
cliente_repo = ClienteRepositoryDjango()
ordem_repo = OrdemServicoRepositoryDjango()
orcamento_repo = OrcamentoRepositoryDjango()
equipe_repo = EquipeRepositoryDjango()
transacao_repo = TransacaoCaixaRepositoryDjango()
caixa_repo = CaixaRepositoryDjango()
catalogo_repo = CatalogoRepositoryDjango()
regra_repo = RegraDeslocamentoRepositoryDjango()
configuracao_repo = ConfiguracaoRepositoryDjango()
solicitacao_repo = SolicitacaoOrcamentoRepositoryDjango()
captura_repo = CapturaLocalizacaoRepositoryDjango()
distancia_gateway = GoogleDistanciaGateway()
geocodificador = NominatimGeocodificadorGateway()

# ====================================================================
# Use Cases de Clientes
# ====================================================================

def get_cadastrar_cliente_use_case() -> CadastrarClienteUseCase:
    return CadastrarClienteUseCase(cliente_repo)

def get_atualizar_cliente_use_case() -> AtualizarClienteUseCase:
    return AtualizarClienteUseCase(cliente_repo)

def get_atualizar_localizacao_cliente_use_case() -> AtualizarLocalizacaoClienteUseCase:
    return AtualizarLocalizacaoClienteUseCase(cliente_repo)

def get_gerenciar_enderecos_cliente_use_case() -> GerenciarEnderecosClienteUseCase:
    return GerenciarEnderecosClienteUseCase(cliente_repo)


# ====================================================================
# Use Cases de Ordens de Serviço e Agenda
# ====================================================================

def get_calcular_disponibilidade_use_case() -> CalcularDisponibilidadeUseCase:
    return CalcularDisponibilidadeUseCase(ordem_repo)

def get_criar_ordem_use_case() -> CriarOrdemServicoUseCase:
    return CriarOrdemServicoUseCase(ordem_repo, cliente_repo, equipe_repo)

def get_atualizar_ordem_use_case() -> AtualizarOrdemServicoUseCase:
    return AtualizarOrdemServicoUseCase(ordem_repo, cliente_repo, equipe_repo)

def get_alterar_ordem_use_case() -> AlterarOrdemServicoUseCase:
    return AlterarOrdemServicoUseCase(ordem_repo, cliente_repo, equipe_repo)

def get_excluir_ordem_use_case() -> ExcluirOrdemServicoUseCase:
    return ExcluirOrdemServicoUseCase(ordem_repo, transacao_repo)

def get_registrar_recebimento_use_case() -> RegistrarRecebimentoUseCase:
    return RegistrarRecebimentoUseCase(
        ordem_repo=ordem_repo,
        transacao_repo=transacao_repo,
        caixa_repo=caixa_repo
    )

def get_registrar_assinatura_ordem_use_case() -> RegistrarAssinaturaOrdemUseCase:
    return RegistrarAssinaturaOrdemUseCase(ordem_repo)

def get_avaliar_ordem_use_case() -> AvaliarOrdemServicoUseCase:
    return AvaliarOrdemServicoUseCase(ordem_repo)


# ====================================================================
# Use Cases de Orçamentos
# ====================================================================

def get_criar_orcamento_use_case() -> CriarOrcamentoUseCase:
    return CriarOrcamentoUseCase(orcamento_repo, cliente_repo)

def get_atualizar_orcamento_use_case() -> AtualizarOrcamentoUseCase:
    return AtualizarOrcamentoUseCase(orcamento_repo, cliente_repo)

def get_excluir_orcamento_use_case() -> ExcluirOrcamentoUseCase:
    return ExcluirOrcamentoUseCase(orcamento_repo)

def get_converter_orcamento_use_case() -> ConverterOrcamentoUseCase:
    return ConverterOrcamentoUseCase(
        orcamento_repo=orcamento_repo,
        ordem_repo=ordem_repo,
        cliente_repo=cliente_repo,
        equipe_repo=equipe_repo
    )

def get_gerar_link_publico_use_case() -> GerarLinkPublicoUseCase:
    return GerarLinkPublicoUseCase(orcamento_repo)

def get_responder_orcamento_use_case() -> ResponderOrcamentoUseCase:
    return ResponderOrcamentoUseCase(orcamento_repo)


# ====================================================================
# Use Cases de Caixa
# ====================================================================

def get_registrar_transacao_use_case() -> RegistrarTransacaoUseCase:
    return RegistrarTransacaoUseCase(transacao_repo, caixa_repo, cliente_repo, ordem_repo)

def get_abrir_caixa_use_case() -> AbrirCaixaUseCase:
    return AbrirCaixaUseCase(caixa_repo, transacao_repo)

def get_fechar_caixa_use_case() -> FecharCaixaUseCase:
    return FecharCaixaUseCase(caixa_repo, transacao_repo)

def get_consultar_caixa_atual_use_case() -> ConsultarCaixaAtualUseCase:
    return ConsultarCaixaAtualUseCase(caixa_repo, transacao_repo)


# ====================================================================
# Use Cases de Deslocamento
# ====================================================================

def get_calcular_deslocamento_use_case() -> CalcularDeslocamentoUseCase:
    return CalcularDeslocamentoUseCase(configuracao_repo, regra_repo, distancia_gateway)


# ====================================================================
# Use Cases de Solicitações de Orçamento (leads)
# ====================================================================

def get_criar_solicitacao_use_case() -> CriarSolicitacaoUseCase:
    return CriarSolicitacaoUseCase(solicitacao_repo)

def get_atualizar_solicitacao_use_case() -> AtualizarSolicitacaoUseCase:
    return AtualizarSolicitacaoUseCase(solicitacao_repo)

def get_verificar_cliente_solicitacao_use_case() -> VerificarClienteSolicitacaoUseCase:
    return VerificarClienteSolicitacaoUseCase(solicitacao_repo, cliente_repo)

def get_converter_solicitacao_use_case() -> ConverterSolicitacaoUseCase:
    return ConverterSolicitacaoUseCase(solicitacao_repo, cliente_repo, orcamento_repo, catalogo_repo)

def get_converter_solicitacao_em_orcamento_use_case() -> ConverterSolicitacaoEmOrcamentoUseCase:
    return ConverterSolicitacaoEmOrcamentoUseCase(solicitacao_repo, cliente_repo, orcamento_repo, catalogo_repo)


# ====================================================================
# Use Cases de Captura de Localização e Operações
# ====================================================================

def get_gerar_captura_use_case() -> GerarCapturaLocalizacaoUseCase:
    return GerarCapturaLocalizacaoUseCase(
        captura_repo=captura_repo,
        cliente_repo=cliente_repo,
        validade_horas=settings.LOCATION_CAPTURE_TTL_HOURS
    )

def get_registrar_captura_use_case() -> RegistrarCapturaUseCase:
    return RegistrarCapturaUseCase(captura_repo, cliente_repo, geocodificador)

def get_consultar_captura_use_case() -> ConsultarCapturaUseCase:
    return ConsultarCapturaUseCase(captura_repo)

def get_acessar_painel_equipe_use_case() -> AcessarPainelEquipeUseCase:
    return AcessarPainelEquipeUseCase(equipe_repo, ordem_repo)

def get_atualizar_ordem_pela_equipe_use_case() -> AtualizarOrdemPelaEquipeUseCase:
    return AtualizarOrdemPelaEquipeUseCase(equipe_repo, ordem_repo)
