# fundacoes/core/testes.py

import unittest
from unittest.mock import Mock
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

# Importamos as classes que queremos testar
from fundacoes.core.use_cases import (
    CadastrarClienteUseCase, AtualizarClienteUseCase, CalcularDisponibilidadeUseCase,
    CriarOrdemServicoUseCase, ExcluirOrdemServicoUseCase, RegistrarRecebimentoUseCase,
    ConverterOrcamentoUseCase, ResponderOrcamentoUseCase, RegistrarTransacaoUseCase,
    AbrirCaixaUseCase, FecharCaixaUseCase, CalcularDeslocamentoUseCase,
    ConverterSolicitacaoUseCase, RegistrarCapturaUseCase, AcessarPainelEquipeUseCase,
    GerenciarEnderecosClienteUseCase, AvaliarOrdemServicoUseCase,
    aplicar_totais, estimar_duracao, formatar_duracao, resolver_preco_deslocamento, titulo_ordem,
)
from fundacoes.core.entities import (
    Cliente, EnderecoCliente, LinhaServico, OrdemServico, Orcamento, Equipe, TransacaoCaixa,
    Caixa, ItemCatalogo, VariacaoPreco, RegraDeslocamento, Configuracao, Distancia,
    SolicitacaoOrcamento, ServicoSolicitado, CapturaLocalizacao, EnderecoGeocodificado,
)
from fundacoes.core.exceptions import (
    DocumentoDuplicadoError, RegraNegocioError, TransacaoDuplicadaError, ConflitoError,
    ClienteNaoEncontradoError, CredenciaisInvalidasError, AcessoNegadoError, ServicoExternoError,
    ItemNaoEncontradoError, DadosInvalidosError, OrdemServicoNaoEncontradaError,
)

AGORA = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


def _devolver(objeto, *args):
    """Simula o salvar dos repositórios devolvendo a própria entidade."""
    return objeto


class TestCadastroDeClientes(unittest.TestCase):

    def setUp(self):
        self.cliente_repo_mock = Mock()
        self.cliente_repo_mock.salvar.side_effect = _devolver

    def test_documento_repetido_gera_conflito(self):
        """
        Cenário: Cadastrar um segundo cliente com o mesmo CPF.
        """
        # ARRANGE
        self.cliente_repo_mock.existe_documento.return_value = True
        use_case = CadastrarClienteUseCase(self.cliente_repo_mock)

        # ACT e ASSERT
        with self.assertRaises(DocumentoDuplicadoError) as contexto:
            use_case.executar(Cliente(nome='João', tipo_pessoa='cpf', documento='123'))

        self.assertEqual(contexto.exception.status_code, 409)
        self.cliente_repo_mock.salvar.assert_not_called()

    def test_cadastro_normaliza_email_e_endereco(self):
        """
        Cenário: Cadastro com e-mail em maiúsculas e endereço em partes.
        """
        # ARRANGE
        self.cliente_repo_mock.existe_documento.return_value = False
        cliente = Cliente(
            nome='Maria', email='Maria@Exemplo.COM', documento='  ',
            enderecos=[EnderecoCliente(rua='Rua A', numero='10', cidade='Campinas', estado='SP')]
        )

        # ACT
        salvo = CadastrarClienteUseCase(self.cliente_repo_mock).executar(cliente)

        # ASSERT
        self.assertEqual(salvo.email, 'maria@exemplo.com')
        self.assertIsNone(salvo.documento)
        self.assertEqual(salvo.enderecos[0].endereco, 'Rua A, 10 | Campinas - SP')
        self.assertEqual(salvo.endereco, 'Rua A, 10 | Campinas - SP')
        # Sem documento não há verificação de duplicidade
        self.cliente_repo_mock.existe_documento.assert_not_called()

    def test_atualizacao_ignora_o_proprio_cliente_na_duplicidade(self):
        """
        Cenário: Atualizar o telefone mantendo o próprio documento.
        """
        # ARRANGE
        self.cliente_repo_mock.buscar_por_id.return_value = Cliente(nome='Ana', documento='999', id=4)
        self.cliente_repo_mock.existe_documento.return_value = False

        # ACT
        AtualizarClienteUseCase(self.cliente_repo_mock).executar(4, {'telefone': '11999990000'})

        # ASSERT
        self.cliente_repo_mock.existe_documento.assert_called_once_with('cpf', '999', excluir_id=4)


class TestDisponibilidadeDaEquipe(unittest.TestCase):

    def setUp(self):
        self.ordem_repo_mock = Mock()
        self.use_case = CalcularDisponibilidadeUseCase(self.ordem_repo_mock)

    def test_horarios_que_colidem_com_os_agendada_ficam_ocupados(self):
        """
        Cenário: Equipe com uma OS das 09:00 às 10:30; nova OS de 2 horas.
        """
        # ARRANGE
        self.ordem_repo_mock.listar_agendadas_no_dia.return_value = [
            OrdemServico(data_prevista=datetime(2025, 3, 10, 9, 0), duracao_estimada=90)
        ]

        # ACT
        resultado = self.use_case.executar('Equipe A', date(2025, 3, 10), [])

        # ASSERT
        for horario in ('09:00', '09:30', '10:00'):
            self.assertIn(horario, resultado.ocupados)
            self.assertNotIn(horario, resultado.disponiveis)
        # 07:00 termina exatamente às 09:00 e 10:30 começa quando a OS acaba
        self.assertIn('07:00', resultado.disponiveis)
        self.assertIn('10:30', resultado.disponiveis)
        self.assertEqual(resultado.duracao_estimada, 120)
        self.assertEqual(resultado.duracao_texto, '2h')

    def test_nenhum_horario_ultrapassa_o_fim_do_expediente(self):
        """
        Cenário: Dia livre; o último início possível para 2 horas é 17:30.
        """
        # ARRANGE
        self.ordem_repo_mock.listar_agendadas_no_dia.return_value = []

        # ACT
        resultado = self.use_case.executar('Equipe A', date(2025, 3, 10), [])

        # ASSERT
        self.assertEqual(resultado.disponiveis[0], '06:00')
        self.assertEqual(resultado.disponiveis[-1], '17:30')
        self.assertNotIn('18:00', resultado.disponiveis + resultado.ocupados)

    def test_duracao_pelos_servicos(self):
        """
        Cenário: 3 estacas de 5m a 4 min/m somam 60 min + 30 de deslocamento.
        """
        linhas = [LinhaServico(servico='Estaca', quantidade='3', profundidade='5m', tempo_execucao=4)]

        self.assertEqual(estimar_duracao(linhas), 90)
        self.assertEqual(formatar_duracao(90), '1h 30min')
        self.assertEqual(formatar_duracao(45), '45min')

    def test_tempo_de_execucao_nao_numerico_vale_zero(self):
        """
        Cenário: Tempo por metro digitado como texto livre ("abc" ou "4 min").
        """
        invalida = LinhaServico(servico='Estaca', quantidade='2', tempo_execucao='abc')
        textual = LinhaServico(servico='Estaca', quantidade='2', profundidade='5', tempo_execucao='4 min')

        self.assertEqual(invalida.minutos_execucao, 0.0)
        self.assertEqual(estimar_duracao([invalida]), 120)
        self.assertEqual(textual.minutos_execucao, 40.0)


class TestPrecificacao(unittest.TestCase):

    def test_totais_somam_servicos_e_deslocamento(self):
        """
        Cenário: Dois serviços (um com 10% de desconto) e deslocamento de R$ 100.
        """
        # ARRANGE
        ordem = OrdemServico(
            servicos=[
                LinhaServico(servico='Estaca', valor=Decimal('1000'), desconto_percentual=Decimal('10')),
                LinhaServico(servico='Sondagem', valor=Decimal('500')),
            ],
            deslocamento_preco=Decimal('100'),
        )

        # ACT
        aplicar_totais(ordem)

        # ASSERT
        self.assertEqual(ordem.servicos[0].valor_final, Decimal('900.00'))
        self.assertEqual(ordem.valor, Decimal('1600.00'))
        self.assertEqual(ordem.desconto_valor, Decimal('100.00'))
        self.assertEqual(ordem.desconto_percentual, Decimal('6.67'))
        self.assertEqual(ordem.valor_final, Decimal('1500.00'))

    def test_valor_explicito_prevalece(self):
        """
        Cenário: Valor informado manualmente com desconto de 5%.
        """
        ordem = OrdemServico(
            servicos=[LinhaServico(servico='Estaca', valor=Decimal('1000'))],
            valor=Decimal('2000'),
            desconto_percentual=Decimal('5'),
        )

        aplicar_totais(ordem)

        self.assertEqual(ordem.valor_final, Decimal('1900.00'))

    def test_titulo_da_ordem(self):
        self.assertEqual(
            titulo_ordem('Maria', datetime(2025, 3, 10, 8, 30), 12),
            'Maria - 10/03/2025 08:30 - 000012'
        )
        self.assertEqual(titulo_ordem(None, None, 1), 'Cliente não informado - sem-data - 000001')


class TestOrdensDeServico(unittest.TestCase):

    def setUp(self):
        self.ordem_repo_mock = Mock()
        self.cliente_repo_mock = Mock()
        self.equipe_repo_mock = Mock()
        self.transacao_repo_mock = Mock()
        self.caixa_repo_mock = Mock()
        self.ordem_repo_mock.salvar.side_effect = _devolver

    def test_criar_ordem_denormaliza_cliente_e_gera_titulo(self):
        """
        Cenário: Nova OS para um cliente com endereço geolocalizado.
        """
        # ARRANGE
        self.ordem_repo_mock.proximo_seq.return_value = 7
        self.cliente_repo_mock.buscar_por_id.return_value = Cliente(
            nome='Construtora Alfa', id=3, endereco='Rua B, 20',
            enderecos=[EnderecoCliente(endereco='Rua B, 20', latitude=-22.9, longitude=-47.06)]
        )
        self.equipe_repo_mock.buscar_por_nome.return_value = Equipe(nome='Equipe A', id=2)
        use_case = CriarOrdemServicoUseCase(self.ordem_repo_mock, self.cliente_repo_mock, self.equipe_repo_mock)

        # ACT
        ordem = use_case.executar(OrdemServico(
            cliente_id=3, equipe_nome='Equipe A', data_prevista=datetime(2025, 3, 10, 8, 0)
        ))

        # ASSERT
        self.assertEqual(ordem.seq, 7)
        self.assertEqual(ordem.titulo, 'Construtora Alfa - 10/03/2025 08:00 - 000007')
        self.assertEqual(ordem.local, 'Rua B, 20')
        self.assertEqual(ordem.local_latitude, -22.9)
        self.assertEqual(ordem.equipe_id, 2)

    def test_criar_ordem_com_cliente_inexistente_falha(self):
        self.ordem_repo_mock.proximo_seq.return_value = 1
        self.cliente_repo_mock.buscar_por_id.return_value = None
        use_case = CriarOrdemServicoUseCase(self.ordem_repo_mock, self.cliente_repo_mock, self.equipe_repo_mock)

        with self.assertRaises(ClienteNaoEncontradoError):
            use_case.executar(OrdemServico(cliente_id=99))

    def test_excluir_ordem_nao_cancelada_falha(self):
        """
        Cenário: Tentar excluir uma OS pendente.
        """
        # ARRANGE
        self.ordem_repo_mock.buscar_por_id.return_value = OrdemServico(id=1, status='pendente')
        use_case = ExcluirOrdemServicoUseCase(self.ordem_repo_mock, self.transacao_repo_mock)

        # ACT e ASSERT
        with self.assertRaises(RegraNegocioError):
            use_case.executar(1)
        self.ordem_repo_mock.deletar.assert_not_called()

    def test_excluir_ordem_com_transacao_falha(self):
        """
        Cenário: OS cancelada, mas com lançamento no caixa.
        """
        self.ordem_repo_mock.buscar_por_id.return_value = OrdemServico(id=1, status='cancelada')
        self.transacao_repo_mock.existe_para_ordem.return_value = True
        use_case = ExcluirOrdemServicoUseCase(self.ordem_repo_mock, self.transacao_repo_mock)

        with self.assertRaises(RegraNegocioError):
            use_case.executar(1)
        self.ordem_repo_mock.deletar.assert_not_called()

    def test_excluir_ordem_cancelada_sem_transacoes(self):
        self.ordem_repo_mock.buscar_por_id.return_value = OrdemServico(id=1, status='cancelada')
        self.transacao_repo_mock.existe_para_ordem.return_value = False

        ExcluirOrdemServicoUseCase(self.ordem_repo_mock, self.transacao_repo_mock).executar(1)

        self.ordem_repo_mock.deletar.assert_called_once_with(1)

    def test_recebimento_abre_caixa_e_lanca_entrada(self):
        """
        Cenário: OS concluída recebida sem caixa aberto.
        """
        # ARRANGE
        self.ordem_repo_mock.buscar_por_id.return_value = OrdemServico(
            id=5, seq=12, status='concluida', cliente_id=3, cliente_nome='Maria',
            titulo='Maria - 10/03/2025 08:00 - 000012', valor_final=Decimal('500.00')
        )
        self.caixa_repo_mock.buscar_aberto.return_value = None
        self.caixa_repo_mock.salvar.side_effect = lambda caixa: Caixa(
            aberto_em=caixa.aberto_em, aberto_por=caixa.aberto_por, id=7
        )
        self.transacao_repo_mock.buscar_entrada_da_ordem.return_value = None
        self.ordem_repo_mock.registrar_recebimento.side_effect = lambda ordem, transacao: (ordem, transacao)
        use_case = RegistrarRecebimentoUseCase(self.ordem_repo_mock, self.transacao_repo_mock, self.caixa_repo_mock)

        # ACT
        ordem, transacao = use_case.executar(5, forma_pagamento='pix', agora=AGORA)

        # ASSERT
        caixa_aberto = self.caixa_repo_mock.salvar.call_args[0][0]
        self.assertEqual(caixa_aberto.aberto_por, 'Sistema (auto-abertura)')
        self.assertTrue(ordem.recebido)
        self.assertEqual(transacao.caixa_id, 7)
        self.assertEqual(transacao.valor, Decimal('500.00'))
        self.assertEqual(transacao.descricao, 'Pagamento de Serviço - Maria - OS 000012')
        self.assertEqual(transacao.categoria, 'Pagamento de Serviço')

    def test_recebimento_de_ordem_nao_concluida_falha(self):
        self.ordem_repo_mock.buscar_por_id.return_value = OrdemServico(
            id=5, status='em_execucao', valor_final=Decimal('500')
        )
        use_case = RegistrarRecebimentoUseCase(self.ordem_repo_mock, self.transacao_repo_mock, self.caixa_repo_mock)

        with self.assertRaises(RegraNegocioError):
            use_case.executar(5, forma_pagamento='pix')
        self.ordem_repo_mock.registrar_recebimento.assert_not_called()


class TestOrcamentos(unittest.TestCase):

    def setUp(self):
        self.orcamento_repo_mock = Mock()
        self.ordem_repo_mock = Mock()
        self.cliente_repo_mock = Mock()
        self.equipe_repo_mock = Mock()
        self.orcamento_repo_mock.salvar.side_effect = _devolver
        self.use_case = ConverterOrcamentoUseCase(
            orcamento_repo=self.orcamento_repo_mock,
            ordem_repo=self.ordem_repo_mock,
            cliente_repo=self.cliente_repo_mock,
            equipe_repo=self.equipe_repo_mock
        )

    def test_converter_orcamento_ja_convertido_falha(self):
        """
        Cenário: Converter duas vezes o mesmo orçamento.
        """
        # ARRANGE
        self.orcamento_repo_mock.buscar_por_id.return_value = Orcamento(id=1, cliente_id=3, status='convertido')

        # ACT e ASSERT
        with self.assertRaises(RegraNegocioError):
            self.use_case.executar(1, datetime(2025, 3, 12, 8, 0), equipe_id=2)
        self.orcamento_repo_mock.converter_em_ordem.assert_not_called()

    def test_converter_orcamento_copia_servicos_e_valores(self):
        """
        Cenário: Orçamento aprovado convertido em OS para a Equipe A.
        """
        # ARRANGE
        orcamento = Orcamento(
            id=1, cliente_id=3, cliente_nome='Maria', status='aprovado',
            servicos=[LinhaServico(servico='Estaca', valor=Decimal('800'), valor_final=Decimal('800'))],
            valor=Decimal('800'), valor_final=Decimal('800'), deslocamento_preco=Decimal('0'),
        )
        self.orcamento_repo_mock.buscar_por_id.return_value = orcamento
        self.equipe_repo_mock.buscar_por_id.return_value = Equipe(nome='Equipe A', id=2)
        self.cliente_repo_mock.buscar_por_id.return_value = Cliente(nome='Maria', id=3, endereco='Rua C, 1')
        self.ordem_repo_mock.proximo_seq.return_value = 40
        self.orcamento_repo_mock.converter_em_ordem.side_effect = lambda orc, ordem: (orc, ordem)

        # ACT
        orcamento_convertido, ordem = self.use_case.executar(1, datetime(2025, 3, 12, 8, 0), equipe_id=2)

        # ASSERT
        self.assertEqual(orcamento_convertido.status, 'convertido')
        self.assertEqual(ordem.equipe_nome, 'Equipe A')
        self.assertEqual(ordem.valor_final, Decimal('800'))
        self.assertEqual(ordem.local, 'Rua C, 1')
        self.assertEqual(ordem.titulo, 'Maria - 12/03/2025 08:00 - 000040')
        # Os serviços são copiados, não compartilhados
        self.assertIsNot(ordem.servicos[0], orcamento.servicos[0])

    def test_aprovacao_publica_de_orcamento_processado_falha(self):
        """
        Cenário: Link público usado depois de o orçamento ter sido rejeitado.
        """
        self.orcamento_repo_mock.buscar_por_token.return_value = Orcamento(id=1, rejeitado=True)

        with self.assertRaises(RegraNegocioError):
            ResponderOrcamentoUseCase(self.orcamento_repo_mock).aprovar_publico('abc', 'assinatura')

    def test_cliente_aprova_orcamento_rejeitado_pelo_portal(self):
        """
        Cenário: No portal, o cliente muda de ideia e aprova um orçamento rejeitado.
        """
        self.orcamento_repo_mock.buscar_por_id.return_value = Orcamento(
            id=1, cliente_id=3, rejeitado=True, motivo_rejeicao='caro'
        )

        orcamento = ResponderOrcamentoUseCase(self.orcamento_repo_mock).aprovar_pelo_cliente(
            1, 3, 'data:image/png;base64,xyz', agora=AGORA
        )

        self.assertTrue(orcamento.aprovado)
        self.assertFalse(orcamento.rejeitado)
        self.assertIsNone(orcamento.motivo_rejeicao)
        self.assertEqual(orcamento.status, 'aprovado')


class TestCaixa(unittest.TestCase):

    def setUp(self):
        self.transacao_repo_mock = Mock()
        self.caixa_repo_mock = Mock()
        self.cliente_repo_mock = Mock()
        self.ordem_repo_mock = Mock()
        self.caixa_repo_mock.salvar.side_effect = _devolver
        self.transacao_repo_mock.salvar.side_effect = _devolver

    def test_segunda_entrada_para_a_mesma_ordem_e_recusada(self):
        """
        Cenário: Lançar duas entradas para a mesma OS.
        """
        # ARRANGE
        self.caixa_repo_mock.buscar_aberto.return_value = Caixa(aberto_em=AGORA, id=1)
        self.ordem_repo_mock.buscar_por_id.return_value = OrdemServico(id=5, titulo='OS 5')
        self.transacao_repo_mock.buscar_entrada_da_ordem.return_value = TransacaoCaixa(
            tipo='entrada', valor=Decimal('100'), descricao='x', data=date(2025, 3, 10), ordem_id=5
        )
        use_case = RegistrarTransacaoUseCase(
            self.transacao_repo_mock, self.caixa_repo_mock, self.cliente_repo_mock, self.ordem_repo_mock
        )

        # ACT e ASSERT
        with self.assertRaises(TransacaoDuplicadaError):
            use_case.executar(TransacaoCaixa(
                tipo='entrada', valor=Decimal('100'), descricao='Sinal', data=date(2025, 3, 10), ordem_id=5
            ))
        self.transacao_repo_mock.salvar.assert_not_called()

    def test_transacao_sem_caixa_aberto_falha(self):
        self.caixa_repo_mock.buscar_aberto.return_value = None
        use_case = RegistrarTransacaoUseCase(
            self.transacao_repo_mock, self.caixa_repo_mock, self.cliente_repo_mock, self.ordem_repo_mock
        )

        with self.assertRaises(RegraNegocioError):
            use_case.executar(TransacaoCaixa(tipo='saida', valor=Decimal('30'), descricao='Diesel',
                                             data=date(2025, 3, 10)))

    def test_abrir_caixa_com_outro_aberto_gera_conflito(self):
        self.caixa_repo_mock.buscar_aberto.return_value = Caixa(aberto_em=AGORA, id=1)

        with self.assertRaises(ConflitoError):
            AbrirCaixaUseCase(self.caixa_repo_mock, self.transacao_repo_mock).executar(Decimal('50'))

    def test_fechar_caixa_usa_saldo_calculado(self):
        """
        Cenário: Saldo inicial 100, entradas 500, saídas 150.
        """
        # ARRANGE
        self.caixa_repo_mock.buscar_aberto.return_value = Caixa(aberto_em=AGORA, saldo_inicial=Decimal('100'), id=1)
        self.transacao_repo_mock.somar_por_tipo.return_value = {
            'entrada': Decimal('500'), 'saida': Decimal('150')
        }

        # ACT
        caixa = FecharCaixaUseCase(self.caixa_repo_mock, self.transacao_repo_mock).executar(agora=AGORA)

        # ASSERT
        self.assertEqual(caixa.status, 'fechado')
        self.assertEqual(caixa.saldo_final, Decimal('450.00'))


class TestDeslocamento(unittest.TestCase):

    def setUp(self):
        self.regras = [
            RegraDeslocamento(tipo='per_km', preco_por_km=Decimal('2.50'), ida_e_volta=True, ordem=1, id=2),
            RegraDeslocamento(tipo='fixed', ate_km=10, preco_fixo=Decimal('50'), descricao='Taxa local',
                              ida_e_volta=False, ordem=0, id=1),
        ]

    def test_primeira_faixa_que_atende_a_distancia(self):
        cotacao = resolver_preco_deslocamento(8, self.regras)

        self.assertEqual(cotacao.preco, Decimal('50.00'))
        self.assertEqual(cotacao.descricao, 'Taxa local')
        self.assertEqual(cotacao.regra_id, 1)

    def test_ida_e_volta_cobra_em_dobro(self):
        cotacao = resolver_preco_deslocamento(20, self.regras)

        self.assertEqual(cotacao.preco, Decimal('100.00'))
        self.assertEqual(cotacao.descricao, '20km × R$ 2.50/km (ida e volta)')

    def test_distancia_igual_ao_limite_fica_na_faixa(self):
        cotacao = resolver_preco_deslocamento(10, self.regras)

        self.assertEqual(cotacao.regra_id, 1)
        self.assertEqual(cotacao.preco, Decimal('50.00'))

    def test_taxa_fixa_de_ida_e_volta(self):
        """
        Cenário: Faixa fixa de R$ 40,00 até 15 km cobrada em ida e volta.
        """
        regras = [RegraDeslocamento(tipo='fixed', ate_km=15, preco_fixo=Decimal('40'), descricao='Região',
                                    ida_e_volta=True, ordem=0, id=5)]

        cotacao = resolver_preco_deslocamento(15, regras)

        self.assertEqual(cotacao.preco, Decimal('80.00'))
        self.assertEqual(cotacao.descricao, 'Região (ida e volta)')
        self.assertEqual(cotacao.regra_id, 5)

    def test_sem_regra_o_preco_e_zero(self):
        cotacao = resolver_preco_deslocamento(30, [])

        self.assertEqual(cotacao.preco, Decimal('0.00'))
        self.assertEqual(cotacao.descricao, '30km (sem regra de preço configurada)')

    def test_calculo_arredonda_quilometros(self):
        """
        Cenário: 12,5 km pelo serviço de rotas viram 13 km na cotação.
        """
        # ARRANGE
        configuracao_repo_mock = Mock()
        configuracao_repo_mock.obter.return_value = Configuracao(endereco_sede='Rua Sede, 1')
        regra_repo_mock = Mock()
        regra_repo_mock.listar_ordenadas.return_value = []
        gateway_mock = Mock()
        gateway_mock.calcular.return_value = Distancia(metros=12500, duracao_texto='20 min')

        # ACT
        cotacao = CalcularDeslocamentoUseCase(configuracao_repo_mock, regra_repo_mock, gateway_mock).executar('Rua X')

        # ASSERT
        gateway_mock.calcular.assert_called_once_with('Rua Sede, 1', 'Rua X')
        self.assertEqual(cotacao.distancia_km, 13)
        self.assertEqual(cotacao.duracao_texto, '20 min')

    def test_sem_endereco_da_empresa_falha(self):
        configuracao_repo_mock = Mock()
        configuracao_repo_mock.obter.return_value = Configuracao()

        with self.assertRaises(RegraNegocioError):
            CalcularDeslocamentoUseCase(configuracao_repo_mock, Mock(), Mock()).executar('Rua X')


class TestConversaoDeSolicitacao(unittest.TestCase):

    def setUp(self):
        self.solicitacao_repo_mock = Mock()
        self.cliente_repo_mock = Mock()
        self.orcamento_repo_mock = Mock()
        self.catalogo_repo_mock = Mock()
        self.solicitacao_repo_mock.salvar.side_effect = _devolver
        self.orcamento_repo_mock.salvar.side_effect = _devolver
        self.use_case = ConverterSolicitacaoUseCase(
            self.solicitacao_repo_mock, self.cliente_repo_mock, self.orcamento_repo_mock, self.catalogo_repo_mock
        )
        self.solicitacao = SolicitacaoOrcamento(
            id=9, nome='Carlos', telefone='11988887777', email='carlos@exemplo.com',
            endereco='Rua D, 5', tipo_solo='terra_comum', acesso='facil',
            servicos=[ServicoSolicitado(servico_id=1, diametro='30', profundidade='6', quantidade='4')],
        )

    def test_lead_novo_vira_cliente_com_documento_provisorio_e_orcamento(self):
        """
        Cenário: Lead sem cadastro, convertido com orçamento precificado pelo catálogo.
        """
        # ARRANGE
        self.solicitacao_repo_mock.buscar_por_id.return_value = self.solicitacao
        self.cliente_repo_mock.buscar_por_telefone.return_value = None
        self.cliente_repo_mock.buscar_por_email.return_value = None
        self.cliente_repo_mock.buscar_por_nome_e_telefone.return_value = None

        def salvar_cliente(cliente):
            cliente.id = 20
            return cliente
        self.cliente_repo_mock.salvar.side_effect = salvar_cliente
        self.catalogo_repo_mock.buscar_por_id.return_value = ItemCatalogo(
            nome='Estaca escavada', id=1,
            variacoes=[VariacaoPreco(diametro=30, tipo_solo='misturado', acesso='livre',
                                     preco=Decimal('100'), tempo_execucao=2)]
        )
        self.orcamento_repo_mock.proximo_seq.return_value = 5

        # ACT
        solicitacao, cliente, orcamento = self.use_case.executar(9, criar_orcamento=True, agora=AGORA)

        # ASSERT
        self.assertTrue(cliente.documento.startswith('TEMP_'))
        self.assertEqual(cliente.enderecos[0].endereco, 'Rua D, 5')
        self.assertEqual(orcamento.titulo, 'Orçamento Carlos - ORC000005')
        linha = orcamento.servicos[0]
        self.assertEqual(linha.diametro, '30cm')
        self.assertEqual(linha.valor, Decimal('2400.00'))
        self.assertEqual(orcamento.valor_final, Decimal('2400.00'))
        self.assertEqual(solicitacao.status, 'convertido')
        self.assertEqual(solicitacao.cliente_id, 20)

    def test_lead_ja_convertido_falha(self):
        self.solicitacao.status = 'convertido'
        self.solicitacao_repo_mock.buscar_por_id.return_value = self.solicitacao

        with self.assertRaises(RegraNegocioError):
            self.use_case.executar(9)

    def test_cliente_existente_e_reaproveitado(self):
        """
        Cenário: O telefone do lead já pertence a um cliente.
        """
        # ARRANGE
        self.solicitacao_repo_mock.buscar_por_id.return_value = self.solicitacao
        existente = Cliente(nome='Carlos', id=11, telefone='11988887777', endereco='Rua Antiga, 9',
                            enderecos=[EnderecoCliente(endereco='Rua Antiga, 9')])
        self.cliente_repo_mock.buscar_por_telefone.return_value = existente
        self.cliente_repo_mock.salvar.side_effect = _devolver

        # ACT
        _, cliente, orcamento = self.use_case.executar(9)

        # ASSERT
        self.assertIsNone(orcamento)
        self.assertEqual(cliente.id, 11)
        self.assertEqual(cliente.email, 'carlos@exemplo.com')
        self.assertEqual([e.endereco for e in cliente.enderecos], ['Rua Antiga, 9', 'Rua D, 5'])


class TestCapturaDeLocalizacao(unittest.TestCase):

    def setUp(self):
        self.captura_repo_mock = Mock()
        self.cliente_repo_mock = Mock()
        self.geocodificador_mock = Mock()
        self.captura_repo_mock.salvar.side_effect = _devolver
        self.cliente_repo_mock.salvar.side_effect = _devolver
        self.use_case = RegistrarCapturaUseCase(
            self.captura_repo_mock, self.cliente_repo_mock, self.geocodificador_mock
        )

    def _captura(self):
        return CapturaLocalizacao(token='t' * 64, cliente_id=3, indice_endereco=0,
                                  expira_em=AGORA + timedelta(hours=1))

    def test_token_invalido_ou_expirado(self):
        self.captura_repo_mock.buscar_valida.return_value = None

        with self.assertRaises(ItemNaoEncontradoError):
            self.use_case.executar('x', -22.9, -47.0, agora=AGORA)

    def test_captura_atualiza_endereco_do_cliente(self):
        """
        Cenário: Cliente envia a localização e o endereço é completado pelo geocodificador.
        """
        # ARRANGE
        self.captura_repo_mock.buscar_valida.return_value = self._captura()
        cliente = Cliente(nome='Maria', id=3, enderecos=[EnderecoCliente(rotulo='Obra')])
        self.cliente_repo_mock.buscar_por_id.return_value = cliente
        self.geocodificador_mock.reverso.return_value = EnderecoGeocodificado(
            endereco='Rua E, 7 | Centro | Campinas - SP', rua='Rua E', numero='7', cidade='Campinas'
        )

        # ACT
        captura = self.use_case.executar('t' * 64, -22.9, -47.06, agora=AGORA)

        # ASSERT
        self.assertEqual(captura.status, 'captured')
        self.assertEqual(captura.rua, 'Rua E')
        self.assertEqual(cliente.enderecos[0].latitude, -22.9)
        self.assertEqual(cliente.enderecos[0].rua, 'Rua E')
        self.cliente_repo_mock.salvar.assert_called_once_with(cliente)

    def test_falha_na_geocodificacao_nao_impede_a_captura(self):
        self.captura_repo_mock.buscar_valida.return_value = self._captura()
        self.cliente_repo_mock.buscar_por_id.return_value = Cliente(nome='Maria', id=3)
        self.geocodificador_mock.reverso.side_effect = ServicoExternoError()

        captura = self.use_case.executar('t' * 64, -22.9, -47.06, agora=AGORA)

        self.assertEqual(captura.status, 'captured')
        self.assertIsNone(captura.rua)

    def test_indice_inexistente_nao_cria_enderecos_em_branco(self):
        """
        Cenário: O link aponta para o endereço 2, mas o cliente só tem um.
        """
        # ARRANGE
        captura = self._captura()
        captura.indice_endereco = 2
        self.captura_repo_mock.buscar_valida.return_value = captura
        cliente = Cliente(nome='Maria', id=3, enderecos=[EnderecoCliente(rotulo='Obra')])
        self.cliente_repo_mock.buscar_por_id.return_value = cliente
        self.geocodificador_mock.reverso.return_value = EnderecoGeocodificado(rua='Rua E')

        # ACT
        resultado = self.use_case.executar('t' * 64, -22.9, -47.06, agora=AGORA)

        # ASSERT
        self.assertEqual(resultado.status, 'captured')
        self.assertEqual(resultado.latitude, -22.9)
        self.assertEqual(len(cliente.enderecos), 1)
        self.cliente_repo_mock.salvar.assert_not_called()

    def test_nova_captura_substitui_a_anterior(self):
        """
        Cenário: Link já usado é reenviado; o geocodificador sobrescreve o endereço.
        """
        # ARRANGE
        captura = self._captura()
        captura.status = 'captured'
        captura.latitude, captura.longitude = -10.0, -40.0
        self.captura_repo_mock.buscar_valida.return_value = captura
        cliente = Cliente(nome='Maria', id=3, enderecos=[
            EnderecoCliente(rotulo='Obra', endereco='Rua Velha, 1', rua='Rua Velha', numero='1', cidade='Campinas')
        ])
        self.cliente_repo_mock.buscar_por_id.return_value = cliente
        self.geocodificador_mock.reverso.return_value = EnderecoGeocodificado(
            endereco='Rua Nova, 9 | Centro | Campinas - SP', rua='Rua Nova', numero='9', bairro='Centro'
        )

        # ACT
        resultado = self.use_case.executar('t' * 64, -22.9, -47.06, agora=AGORA)

        # ASSERT
        self.assertEqual(resultado.latitude, -22.9)
        endereco = cliente.enderecos[0]
        self.assertEqual((endereco.rua, endereco.numero, endereco.bairro), ('Rua Nova', '9', 'Centro'))
        self.assertEqual(endereco.cidade, 'Campinas')
        self.assertEqual(endereco.endereco, 'Rua Nova, 9 | Centro | Campinas - SP')
        self.assertEqual(endereco.rotulo, 'Obra')


class TestPortalDoCliente(unittest.TestCase):

    def setUp(self):
        self.cliente_repo_mock = Mock()
        self.cliente_repo_mock.salvar.side_effect = _devolver
        self.ordem_repo_mock = Mock()
        self.ordem_repo_mock.salvar.side_effect = _devolver

    def test_novo_endereco_entra_no_fim_da_lista(self):
        cliente = Cliente(nome='Maria', id=3, enderecos=[EnderecoCliente(rotulo='Casa', endereco='Rua A, 1')])
        self.cliente_repo_mock.buscar_por_id.return_value = cliente

        novo = GerenciarEnderecosClienteUseCase(self.cliente_repo_mock).adicionar(
            3, EnderecoCliente(rotulo='Obra', rua='Rua B', numero='2')
        )

        self.assertEqual(novo.rotulo, 'Obra')
        self.assertEqual(novo.endereco, 'Rua B, 2')
        self.assertEqual([e.rotulo for e in cliente.enderecos], ['Casa', 'Obra'])

    def test_remover_endereco_inexistente(self):
        self.cliente_repo_mock.buscar_por_id.return_value = Cliente(nome='Maria', id=3)

        with self.assertRaises(ItemNaoEncontradoError):
            GerenciarEnderecosClienteUseCase(self.cliente_repo_mock).remover(3, 0)

        self.cliente_repo_mock.salvar.assert_not_called()

    def test_avaliacao_grava_nota_comentario_e_data(self):
        """
        Cenário: Cliente dá 4 estrelas para a própria OS concluída.
        """
        # ARRANGE
        self.ordem_repo_mock.buscar_por_id.return_value = OrdemServico(id=9, cliente_id=3, status='concluida')

        # ACT
        ordem = AvaliarOrdemServicoUseCase(self.ordem_repo_mock).executar(9, 3, 4, ' Bom serviço ', agora=AGORA)

        # ASSERT
        self.assertEqual(ordem.avaliacao, 4)
        self.assertEqual(ordem.feedback, 'Bom serviço')
        self.assertEqual(ordem.feedback_em, AGORA)

    def test_avaliacao_recusada(self):
        use_case = AvaliarOrdemServicoUseCase(self.ordem_repo_mock)
        self.ordem_repo_mock.buscar_por_id.return_value = OrdemServico(id=9, cliente_id=3, status='em_andamento')

        with self.assertRaises(DadosInvalidosError):
            use_case.executar(9, 3, 7)
        with self.assertRaises(OrdemServicoNaoEncontradaError):
            use_case.executar(9, 8, 5)
        with self.assertRaises(RegraNegocioError):
            use_case.executar(9, 3, 5)
        self.ordem_repo_mock.salvar.assert_not_called()


class TestPainelDaEquipe(unittest.TestCase):

    def setUp(self):
        self.equipe_repo_mock = Mock()
        self.ordem_repo_mock = Mock()
        self.use_case = AcessarPainelEquipeUseCase(self.equipe_repo_mock, self.ordem_repo_mock)

    def test_senha_incorreta(self):
        self.equipe_repo_mock.buscar_por_id.return_value = Equipe(nome='Equipe A', id=2, senha_operacao='1234')

        with self.assertRaises(CredenciaisInvalidasError):
            self.use_case.executar(2, '0000')

    def test_equipe_sem_senha_configurada(self):
        self.equipe_repo_mock.buscar_por_id.return_value = Equipe(nome='Equipe A', id=2)

        with self.assertRaises(AcessoNegadoError):
            self.use_case.executar(2, '1234')

    def test_senha_correta_lista_as_ordens(self):
        equipe = Equipe(nome='Equipe A', id=2, senha_operacao='1234')
        self.equipe_repo_mock.buscar_por_id.return_value = equipe
        self.ordem_repo_mock.listar_da_equipe.return_value = [OrdemServico(id=1)]

        _, ordens = self.use_case.executar(2, '1234')

        self.assertEqual(len(ordens), 1)
        self.ordem_repo_mock.listar_da_equipe.assert_called_once_with(equipe)


if __name__ == '__main__':
    unittest.main()
