import queue
from datetime import date, datetime, timedelta
from decimal import Decimal
from unittest.mock import Mock, patch

import requests
from django.db import IntegrityError, transaction
from django.test import TestCase, override_settings
from django.utils import timezone

# Importamos as classes que queremos testar
from fundacoes.infrastructure.models import (
    Cliente as ClienteModel,
    Equipe as EquipeModel,
    OrdemServico as OrdemServicoModel,
    TransacaoCaixa as TransacaoCaixaModel,
    Caixa as CaixaModel,
    CapturaLocalizacao as CapturaModel,
)
from fundacoes.infrastructure.repositories import (
    ClienteRepositoryDjango,
    OrdemServicoRepositoryDjango,
    TransacaoCaixaRepositoryDjango,
    CapturaLocalizacaoRepositoryDjango,
)
from fundacoes.infrastructure.gateways import GoogleDistanciaGateway, NominatimGeocodificadorGateway
from fundacoes.infrastructure.eventos import CentralEventos, transmitir, KEEPALIVE
from fundacoes.core.entities import (
    Cliente as ClienteEntity, EnderecoCliente, OrdemServico as OrdemServicoEntity, LinhaServico,
    TransacaoCaixa as TransacaoCaixaEntity,
)
from fundacoes.core.exceptions import (
    DocumentoDuplicadoError, TransacaoDuplicadaError, DadosInvalidosError, ServicoExternoError,
)


def _aware(*args):
    return timezone.make_aware(datetime(*args))


class ClienteRepositoryTestCase(TestCase):

    def setUp(self):
        self.repository = ClienteRepositoryDjango()

    def test_salvar_preserva_a_ordem_dos_enderecos(self):
        """
        Cenário: Cliente com dois endereços de obra, o segundo geolocalizado.
        """
        # ACT
        cliente = self.repository.salvar(ClienteEntity(
            nome='Construtora Alfa', tipo_pessoa='cnpj', documento='12.345.678/0001-90',
            enderecos=[
                EnderecoCliente(rotulo='Sede', endereco='Rua A, 1'),
                EnderecoCliente(rotulo='Obra', endereco='Rua B, 2', latitude=-22.9, longitude=-47.0),
            ]
        ))

        # ASSERT
        self.assertIsNotNone(cliente.id)
        self.assertEqual([e.rotulo for e in cliente.enderecos], ['Sede', 'Obra'])
        self.assertEqual(cliente.enderecos[1].latitude, -22.9)

        # Regravar com um endereço a menos substitui a lista
        cliente.enderecos = cliente.enderecos[1:]
        atualizado = self.repository.salvar(cliente)
        self.assertEqual(len(atualizado.enderecos), 1)

    def test_documento_duplicado_no_banco_vira_conflito(self):
        """
        Cenário: O índice único (tipo_pessoa, documento) barra o segundo cadastro.
        """
        ClienteModel.objects.create(nome='Ana', tipo_pessoa='cpf', documento='111')

        with self.assertRaises(DocumentoDuplicadoError):
            self.repository.salvar(ClienteEntity(nome='Outra Ana', tipo_pessoa='cpf', documento='111'))

    def test_mesmo_documento_em_tipos_diferentes_e_clientes_sem_documento(self):
        ClienteModel.objects.create(nome='Ana', tipo_pessoa='cpf', documento='111')
        ClienteModel.objects.create(nome='Empresa', tipo_pessoa='cnpj', documento='111')
        ClienteModel.objects.create(nome='Sem doc 1')
        ClienteModel.objects.create(nome='Sem doc 2')

        self.assertTrue(self.repository.existe_documento('cpf', '111'))
        self.assertEqual(ClienteModel.objects.count(), 4)

    def test_existe_documento_ignora_o_proprio_cliente(self):
        model = ClienteModel.objects.create(nome='Ana', tipo_pessoa='cpf', documento='111')

        self.assertFalse(self.repository.existe_documento('cpf', '111', excluir_id=model.pk))


class TransacaoEntradaUnicaTestCase(TestCase):
    """Índice parcial: no máximo uma entrada por OS."""

    def setUp(self):
        self.ordem = OrdemServicoModel.objects.create(seq=1, titulo='OS 1', status='concluida',
                                                      valor_final=Decimal('500'))
        self.caixa = CaixaModel.objects.create(aberto_em=timezone.now())

    def _transacao(self, tipo, ordem=None):
        return TransacaoCaixaModel(
            tipo=tipo, valor=Decimal('100'), descricao='Pagamento', data=date(2025, 3, 10),
            ordem=ordem, caixa=self.caixa
        )

    def test_segunda_entrada_para_a_mesma_ordem_viola_o_indice(self):
        self._transacao('entrada', self.ordem).save()

        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                self._transacao('entrada', self.ordem).save()

    def test_saidas_e_entradas_sem_ordem_nao_sao_limitadas(self):
        self._transacao('entrada', self.ordem).save()
        self._transacao('saida', self.ordem).save()
        self._transacao('saida', self.ordem).save()
        self._transacao('entrada').save()
        self._transacao('entrada').save()

        self.assertEqual(TransacaoCaixaModel.objects.count(), 5)

    def test_repositorio_converte_violacao_em_conflito(self):
        repository = TransacaoCaixaRepositoryDjango()
        self._transacao('entrada', self.ordem).save()

        with self.assertRaises(TransacaoDuplicadaError):
            repository.salvar(TransacaoCaixaEntity(
                tipo='entrada', valor=Decimal('100'), descricao='Outra', data=date(2025, 3, 10),
                ordem_id=self.ordem.pk, caixa_id=self.caixa.pk
            ))

    def test_somar_por_tipo(self):
        self._transacao('entrada', self.ordem).save()
        self._transacao('saida').save()

        somas = TransacaoCaixaRepositoryDjango().somar_por_tipo(self.caixa.pk)

        self.assertEqual(somas, {'entrada': Decimal('100'), 'saida': Decimal('100')})


class OrdemServicoRepositoryTestCase(TestCase):

    def setUp(self):
        self.repository = OrdemServicoRepositoryDjango()
        self.equipe = EquipeModel.objects.create(nome='Equipe A', membros=['Zé'])

    def test_proximo_seq_usa_o_maior_numero(self):
        """
        Cenário: Após excluir a OS 1, a próxima continua sendo 3 (não repete a 2).
        """
        OrdemServicoModel.objects.create(seq=1, titulo='OS 1')
        OrdemServicoModel.objects.create(seq=2, titulo='OS 2')
        OrdemServicoModel.objects.filter(seq=1).delete()

        self.assertEqual(self.repository.proximo_seq(), 3)

    def test_salvar_grava_linhas_de_servico(self):
        ordem = self.repository.salvar(OrdemServicoEntity(
            seq=1, titulo='OS 1', equipe_id=self.equipe.pk, equipe_nome='Equipe A',
            servicos=[
                LinhaServico(servico='Estaca', quantidade='3', valor=Decimal('900')),
                LinhaServico(servico='Sondagem'),
            ]
        ))

        self.assertEqual([s.servico for s in ordem.servicos], ['Estaca', 'Sondagem'])
        self.assertEqual(ordem.servicos[0].valor, Decimal('900'))

    def test_agenda_do_dia_ignora_canceladas_e_concluidas(self):
        """
        Cenário: Três OS no mesmo dia para a equipe, só uma ainda bloqueia a agenda.
        """
        # ARRANGE
        for seq, status in ((1, 'pendente'), (2, 'cancelada'), (3, 'concluida')):
            OrdemServicoModel.objects.create(
                seq=seq, titulo=f'OS {seq}', status=status, equipe=self.equipe,
                equipe_nome='Equipe A', data_prevista=_aware(2025, 3, 10, 9, 0)
            )
        OrdemServicoModel.objects.create(
            seq=4, titulo='Outro dia', equipe_nome='Equipe A', data_prevista=_aware(2025, 3, 11, 9, 0)
        )

        # ACT
        ordens = self.repository.listar_agendadas_no_dia('Equipe A', date(2025, 3, 10))
        por_id = self.repository.listar_agendadas_no_dia(str(self.equipe.pk), date(2025, 3, 10))

        # ASSERT
        self.assertEqual([o.seq for o in ordens], [1])
        self.assertEqual([o.seq for o in por_id], [1])
        self.assertEqual(ordens[0].data_prevista.hour, 9)

    def test_recebimento_duplicado_nao_marca_a_ordem(self):
        """
        Cenário: Já existe entrada para a OS; a gravação atômica é desfeita por inteiro.
        """
        # ARRANGE
        model = OrdemServicoModel.objects.create(seq=1, titulo='OS 1', status='concluida',
                                                 valor_final=Decimal('500'))
        caixa = CaixaModel.objects.create(aberto_em=timezone.now())
        TransacaoCaixaModel.objects.create(tipo='entrada', valor=Decimal('500'), descricao='x',
                                           data=date(2025, 3, 10), ordem=model, caixa=caixa)
        ordem = self.repository.buscar_por_id(model.pk)
        ordem.recebido_em = timezone.now()
        transacao = TransacaoCaixaEntity(tipo='entrada', valor=Decimal('500'), descricao='y',
                                         data=date(2025, 3, 10), ordem_id=model.pk, caixa_id=caixa.pk)

        # ACT e ASSERT
        with self.assertRaises(TransacaoDuplicadaError):
            self.repository.registrar_recebimento(ordem, transacao)
        model.refresh_from_db()
        self.assertFalse(model.recebido)
        self.assertEqual(TransacaoCaixaModel.objects.count(), 1)


class CapturaLocalizacaoRepositoryTestCase(TestCase):

    def test_token_expirado_e_tratado_como_inexistente(self):
        cliente = ClienteModel.objects.create(nome='Maria')
        agora = timezone.now()
        CapturaModel.objects.create(token='a' * 64, cliente=cliente, expira_em=agora + timedelta(hours=1))
        CapturaModel.objects.create(token='b' * 64, cliente=cliente, expira_em=agora - timedelta(minutes=1))
        repository = CapturaLocalizacaoRepositoryDjango()

        self.assertIsNotNone(repository.buscar_valida('a' * 64, agora))
        self.assertIsNone(repository.buscar_valida('b' * 64, agora))
        self.assertEqual(repository.remover_expiradas(agora), 1)
        self.assertFalse(CapturaModel.objects.filter(token='b' * 64).exists())


@override_settings(GOOGLE_MAPS_API_KEY='chave-teste', HTTP_TIMEOUT=5)
class GoogleDistanciaGatewayTestCase(TestCase):

    def _resposta(self, corpo):
        resposta = Mock()
        resposta.json.return_value = corpo
        resposta.raise_for_status.return_value = None
        return resposta

    @patch('fundacoes.infrastructure.gateways.requests.get')
    def test_calcular_distancia(self, mock_get):
        """
        Cenário: O Distance Matrix responde 12,5 km e 20 minutos.
        """
        # ARRANGE
        mock_get.return_value = self._resposta({
            'status': 'OK',
            'rows': [{'elements': [{
                'status': 'OK',
                'distance': {'value': 12500, 'text': '12,5 km'},
                'duration': {'value': 1200, 'text': '20 min'},
            }]}],
        })

        # ACT
        distancia = GoogleDistanciaGateway().calcular('Rua Sede, 1', 'Rua Obra, 2')

        # ASSERT
        self.assertEqual(distancia.metros, 12500)
        self.assertEqual(distancia.duracao_texto, '20 min')
        _, kwargs = mock_get.call_args
        self.assertEqual(kwargs['params']['origins'], 'Rua Sede, 1')
        self.assertEqual(kwargs['params']['key'], 'chave-teste')
        self.assertEqual(kwargs['timeout'], 5)

    @patch('fundacoes.infrastructure.gateways.requests.get')
    def test_rota_nao_encontrada(self, mock_get):
        mock_get.return_value = self._resposta({
            'status': 'OK', 'rows': [{'elements': [{'status': 'ZERO_RESULTS'}]}]
        })

        with self.assertRaises(DadosInvalidosError) as contexto:
            GoogleDistanciaGateway().calcular('A', 'B')
        self.assertEqual(contexto.exception.message, 'Não foi possível calcular a rota')

    @patch('fundacoes.infrastructure.gateways.requests.get')
    def test_falha_de_rede_vira_erro_de_servico_externo(self, mock_get):
        mock_get.side_effect = requests.exceptions.Timeout('tempo esgotado')

        with self.assertRaises(ServicoExternoError):
            GoogleDistanciaGateway().calcular('A', 'B')


class NominatimGeocodificadorGatewayTestCase(TestCase):

    @patch('fundacoes.infrastructure.gateways.requests.get')
    def test_reverso_monta_endereco_e_envia_user_agent(self, mock_get):
        # ARRANGE
        resposta = Mock()
        resposta.json.return_value = {
            'display_name': 'Rua E, 7, Centro, Campinas',
            'address': {
                'road': 'Rua E', 'house_number': '7', 'suburb': 'Centro',
                'town': 'Campinas', 'state': 'SP', 'postcode': '13000-000',
            },
        }
        mock_get.return_value = resposta

        # ACT
        geo = NominatimGeocodificadorGateway(user_agent='teste/1.0').reverso(-22.9, -47.06)

        # ASSERT
        self.assertEqual(geo.rua, 'Rua E')
        self.assertEqual(geo.cidade, 'Campinas')
        self.assertEqual(geo.endereco, 'Rua E, 7 | Centro | Campinas - SP | 13000-000')
        _, kwargs = mock_get.call_args
        self.assertEqual(kwargs['headers']['User-Agent'], 'teste/1.0')


class CentralEventosTestCase(TestCase):

    def test_publicar_entrega_para_todos_os_assinantes_do_topico(self):
        central = CentralEventos()
        fila_a = central.assinar('clientes')
        fila_b = central.assinar('clientes')
        fila_outro = central.assinar('ordens')

        central.publicar('clientes', {'tipo': 'insert', 'id': 1})

        self.assertEqual(fila_a.get_nowait(), {'tipo': 'insert', 'id': 1})
        self.assertEqual(fila_b.get_nowait(), {'tipo': 'insert', 'id': 1})
        with self.assertRaises(queue.Empty):
            fila_outro.get_nowait()

    def test_fila_cheia_descarta_sem_travar(self):
        central = CentralEventos(tamanho_fila=1)
        fila = central.assinar('clientes')

        central.publicar('clientes', {'id': 1})
        central.publicar('clientes', {'id': 2})

        self.assertEqual(fila.qsize(), 1)

    def test_transmitir_envia_keepalive_e_cancela_ao_fechar(self):
        """
        Cenário: Conexão SSE sem eventos recebe o comentário de keepalive;
        ao fechar o gerador a fila é descartada.
        """
        # ARRANGE
        central = CentralEventos()
        fluxo = transmitir('clientes', inicial={'type': 'count', 'count': 0},
                           keepalive_segundos=0.01, hub=central)

        # ACT
        primeiro = next(fluxo)
        segundo = next(fluxo)
        central.publicar('clientes', {'tipo': 'update', 'id': 9})
        terceiro = next(fluxo)
        fluxo.close()

        # ASSERT
        self.assertEqual(primeiro, 'data: {"type": "count", "count": 0}\n\n')
        self.assertEqual(segundo, KEEPALIVE)
        self.assertEqual(terceiro, 'data: {"tipo": "update", "id": 9}\n\n')
        self.assertEqual(central.total_assinantes('clientes'), 0)
