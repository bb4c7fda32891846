# fundacoes/presentation/testes.py

import json
from datetime import datetime
from decimal import Decimal
from unittest.mock import Mock, patch

from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework.test import APIClient

# Importamos os modelos usados para montar os cenários
from fundacoes.infrastructure.models import (
    Usuario as UsuarioModel,
    Cliente as ClienteModel,
    EnderecoCliente as EnderecoClienteModel,
    Equipe as EquipeModel,
    OrdemServico as OrdemServicoModel,
    Caixa as CaixaModel,
    TransacaoCaixa as TransacaoCaixaModel,
    Configuracao as ConfiguracaoModel,
    RegraDeslocamento as RegraDeslocamentoModel,
    SolicitacaoOrcamento as SolicitacaoOrcamentoModel,
    MidiaSocial as MidiaSocialModel,
)
from fundacoes.presentation.views_auth import gerar_token_cliente


def _aware(*args):
    return timezone.make_aware(datetime(*args))


class BaseApiTestCase(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.cliente = ClienteModel.objects.create(
            nome='Construtora Alfa', tipo_pessoa='cnpj', documento='12.345.678/0001-90',
            telefone='(19) 3333-0000', email='obras@alfa.com.br'
        )
        self.equipe = EquipeModel.objects.create(nome='Equipe A', membros=['João', 'Pedro'], senha_operacao='1234')

    def criar_ordem(self, seq=1, **extra):
        dados = {
            'seq': seq,
            'titulo': f'Construtora Alfa - 10/03/2025 09:00 - {seq:06d}',
            'cliente': self.cliente,
            'cliente_nome': self.cliente.nome,
            'equipe': self.equipe,
            'equipe_nome': self.equipe.nome,
            'data_prevista': _aware(2025, 3, 10, 9, 0),
        }
        dados.update(extra)
        return OrdemServicoModel.objects.create(**dados)


# ====================================================================
# ENVELOPE E ERROS
# ====================================================================

class EnvelopeApiTestCase(BaseApiTestCase):

    def test_listagem_vem_embrulhada_com_contagem(self):
        """
        Cenário: Listar clientes devolve {data: [...], count}.
        """
        # ACT
        response = self.client.get('/api/clients')

        # ASSERT
        self.assertEqual(response.status_code, 200)
        corpo = response.json()
        self.assertEqual(corpo['count'], 1)
        self.assertEqual(corpo['data'][0]['nome'], 'Construtora Alfa')

    def test_registro_inexistente_responde_404_com_error(self):
        """
        Cenário: Detalhe de um cliente que não existe.
        """
        response = self.client.get('/api/clients/9999')

        self.assertEqual(response.status_code, 404)
        self.assertIn('error', response.json())

    def test_validacao_devolve_issues_por_campo(self):
        """
        Cenário: Cadastro de cliente sem nome.
        """
        # ACT
        response = self.client.post('/api/clients', {'telefone': '123'}, format='json')

        # ASSERT
        self.assertEqual(response.status_code, 400)
        corpo = response.json()
        self.assertEqual(corpo['error'], 'Dados inválidos')
        self.assertIn('nome', corpo['issues']['fieldErrors'])

    def test_health(self):
        response = self.client.get('/health')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {'ok': True})


# ====================================================================
# CLIENTES
# ====================================================================

class ClienteApiTestCase(BaseApiTestCase):

    def test_documento_repetido_responde_409(self):
        """
        Cenário: Segundo cadastro com o mesmo CNPJ.
        """
        # ARRANGE
        payload = {'nome': 'Outra Empresa', 'tipo_pessoa': 'cnpj', 'documento': '12.345.678/0001-90'}

        # ACT
        response = self.client.post('/api/clients', payload, format='json')

        # ASSERT
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['error'], 'Cliente já cadastrado com este documento.')
        self.assertEqual(ClienteModel.objects.count(), 1)

    def test_cadastro_com_enderecos(self):
        """
        Cenário: Cliente novo com dois endereços de obra.
        """
        # ARRANGE
        payload = {
            'nome': 'Maria Souza',
            'tipo_pessoa': 'cpf',
            'documento': '123.456.789-00',
            'enderecos': [
                {'rotulo': 'Casa', 'endereco': 'Rua A, 1'},
                {'rotulo': 'Obra', 'endereco': 'Rua B, 2', 'latitude': -22.9, 'longitude': -47.06},
            ],
        }

        # ACT
        response = self.client.post('/api/clients', payload, format='json')

        # ASSERT
        self.assertEqual(response.status_code, 201)
        dados = response.json()['data']
        self.assertEqual([e['rotulo'] for e in dados['enderecos']], ['Casa', 'Obra'])
        self.assertEqual(dados['enderecos'][1]['latitude'], -22.9)

    def test_localizacao_de_indice_inexistente(self):
        """
        Cenário: PUT /location para um endereço que o cliente não tem.
        """
        response = self.client.put(
            f'/api/clients/{self.cliente.id}/location',
            {'addressIndex': 3, 'latitude': -22.9, 'longitude': -47.0},
            format='json'
        )

        self.assertEqual(response.status_code, 400)


# ====================================================================
# ORDENS DE SERVIÇO
# ====================================================================

class OrdemServicoApiTestCase(BaseApiTestCase):

    def test_criar_ordem_gera_seq_e_titulo(self):
        """
        Cenário: Nova OS com um serviço de R$ 1.000,00 e 10% de desconto.
        """
        # ARRANGE
        payload = {
            'cliente_id': self.cliente.id,
            'equipe_id': self.equipe.id,
            'data_prevista': '2025-03-10T09:00:00-03:00',
            'servicos': [{'servico': 'Estaca escavada', 'valor': '1000.00', 'desconto_percentual': '10'}],
        }

        # ACT
        response = self.client.post('/api/jobs', payload, format='json')

        # ASSERT
        self.assertEqual(response.status_code, 201)
        dados = response.json()['data']
        self.assertEqual(dados['seq'], 1)
        self.assertTrue(dados['titulo'].startswith('Construtora Alfa - '))
        self.assertTrue(dados['titulo'].endswith(' - 000001'))
        self.assertEqual(dados['equipe_nome'], 'Equipe A')
        self.assertEqual(dados['valor_final'], 900.0)

    def test_exclusao_so_para_ordem_cancelada(self):
        """
        Cenário: DELETE numa OS pendente e depois cancelada.
        """
        # ARRANGE
        ordem = self.criar_ordem()

        # ACT
        recusada = self.client.delete(f'/api/jobs/{ordem.id}')
        ordem.status = 'cancelada'
        ordem.save()
        aceita = self.client.delete(f'/api/jobs/{ordem.id}')

        # ASSERT
        self.assertEqual(recusada.status_code, 400)
        self.assertEqual(recusada.json()['error'], 'Apenas OS canceladas podem ser excluídas.')
        self.assertEqual(aceita.status_code, 200)
        self.assertEqual(aceita.json(), {'ok': True})
        self.assertFalse(OrdemServicoModel.objects.filter(pk=ordem.id).exists())

    def test_disponibilidade_marca_horarios_em_conflito(self):
        """
        Cenário: A equipe tem OS das 09:00 às 10:30; a nova OS dura 2h (padrão).
        """
        # ARRANGE
        self.criar_ordem(duracao_estimada=90)

        # ACT
        response = self.client.get('/api/jobs/availability', {'team': 'Equipe A', 'date': '2025-03-10'})

        # ASSERT
        self.assertEqual(response.status_code, 200)
        dados = response.json()['data']
        for horario in ('09:00', '09:30', '10:00'):
            self.assertIn(horario, dados['booked'])
            self.assertNotIn(horario, dados['available'])
        self.assertIn('10:30', dados['available'])
        self.assertEqual(dados['estimatedDuration'], 120)
        self.assertEqual(dados['durationText'], '2h')
        self.assertEqual(dados['date'], '2025-03-10')

    def test_disponibilidade_sem_parametros(self):
        response = self.client.get('/api/jobs/availability', {'team': 'Equipe A'})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'Parâmetros obrigatórios: team e date')

    def test_disponibilidade_com_tempo_de_execucao_invalido_usa_padrao(self):
        servicos = json.dumps([{'executionTime': 'abc', 'quantidade': '2'}])

        response = self.client.get('/api/jobs/availability',
                                   {'team': 'Equipe A', 'date': '2025-03-10', 'services': servicos})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['estimatedDuration'], 120)

    def test_recebimento_lanca_entrada_e_abre_caixa(self):
        """
        Cenário: OS concluída de R$ 500,00 marcada como recebida sem caixa aberto.
        """
        # ARRANGE
        ordem = self.criar_ordem(status='concluida', valor=Decimal('500.00'), valor_final=Decimal('500.00'))

        # ACT
        response = self.client.post(f'/api/jobs/{ordem.id}/received', {'forma_pagamento': 'pix'}, format='json')
        repetida = self.client.post(f'/api/jobs/{ordem.id}/received', {'forma_pagamento': 'pix'}, format='json')

        # ASSERT
        self.assertEqual(response.status_code, 200)
        dados = response.json()['data']
        self.assertTrue(dados['ordem']['recebido'])
        self.assertEqual(dados['transacao']['tipo'], 'entrada')
        self.assertEqual(dados['transacao']['valor'], 500.0)
        self.assertEqual(CaixaModel.objects.filter(status='aberto').count(), 1)
        self.assertEqual(TransacaoCaixaModel.objects.filter(ordem=ordem).count(), 1)

        self.assertEqual(repetida.status_code, 400)
        self.assertEqual(repetida.json()['error'], 'Esta OS já foi marcada como recebida.')


# ====================================================================
# ORÇAMENTOS
# ====================================================================

class OrcamentoApiTestCase(BaseApiTestCase):

    def criar_orcamento(self):
        response = self.client.post('/api/budgets', {
            'cliente_id': self.cliente.id,
            'servicos': [{'servico': 'Estaca escavada', 'valor': '1000.00'}],
        }, format='json')
        self.assertEqual(response.status_code, 201)
        return response.json()['data']

    def test_criar_orcamento(self):
        """
        Cenário: Orçamento com uma linha de serviço.
        """
        # ACT
        orcamento = self.criar_orcamento()

        # ASSERT
        self.assertEqual(orcamento['seq'], 1)
        self.assertEqual(orcamento['titulo'], 'Orçamento Construtora Alfa - ORC000001')
        self.assertEqual(orcamento['valor_final'], 1000.0)
        self.assertEqual(orcamento['total_servicos'], 1)

    def test_converter_duas_vezes_e_recusado(self):
        """
        Cenário: Orçamento convertido em OS; a segunda conversão falha.
        """
        # ARRANGE
        orcamento = self.criar_orcamento()
        payload = {'equipe_id': self.equipe.id, 'data_prevista': '2025-03-12T08:00:00-03:00'}

        # ACT
        primeira = self.client.post(f"/api/budgets/{orcamento['id']}/convert", payload, format='json')
        segunda = self.client.post(f"/api/budgets/{orcamento['id']}/convert", payload, format='json')

        # ASSERT
        self.assertEqual(primeira.status_code, 200)
        dados = primeira.json()['data']
        self.assertEqual(dados['orcamento']['status'], 'convertido')
        self.assertEqual(dados['orcamento']['ordem_id'], dados['ordem']['id'])
        self.assertEqual(dados['ordem']['equipe_nome'], 'Equipe A')

        self.assertEqual(segunda.status_code, 400)
        self.assertEqual(segunda.json()['error'], 'Este orçamento já foi convertido em OS.')
        self.assertEqual(OrdemServicoModel.objects.count(), 1)

    def test_link_publico_aprovacao(self):
        """
        Cenário: O cliente abre o link público e aprova com assinatura.
        """
        # ARRANGE
        orcamento = self.criar_orcamento()
        token = self.client.post(f"/api/budgets/{orcamento['id']}/generate-link").json()['data']['token']

        # ACT
        consulta = self.client.get(f'/api/budgets/public/{token}')
        aprovacao = self.client.post(
            f'/api/budgets/public/{token}/approve', {'signature': 'data:image/png;base64,AAA'}, format='json'
        )
        repetida = self.client.post(
            f'/api/budgets/public/{token}/reject', {'rejectionReason': 'Caro'}, format='json'
        )

        # ASSERT
        self.assertEqual(consulta.status_code, 200)
        self.assertEqual(consulta.json()['data']['id'], orcamento['id'])
        self.assertEqual(aprovacao.status_code, 200)
        self.assertEqual(aprovacao.json()['data']['status'], 'aprovado')
        self.assertEqual(repetida.status_code, 400)


# ====================================================================
# CAIXA
# ====================================================================

class CaixaApiTestCase(BaseApiTestCase):

    def test_transacao_sem_caixa_aberto(self):
        """
        Cenário: Lançamento sem nenhum caixa aberto.
        """
        response = self.client.post('/api/cash', {
            'tipo': 'saida', 'valor': '50.00', 'descricao': 'Combustível', 'data': '2025-03-10',
        }, format='json')

        self.assertEqual(response.status_code, 400)

    def test_segunda_entrada_da_mesma_os_responde_409(self):
        """
        Cenário: Duas entradas lançadas para a mesma OS.
        """
        # ARRANGE
        ordem = self.criar_ordem(status='concluida', valor_final=Decimal('800.00'))
        abertura = self.client.post('/api/cashiers/open', {'saldo_inicial': '100.00'}, format='json')
        payload = {
            'tipo': 'entrada', 'valor': '800.00', 'descricao': 'Pagamento', 'data': '2025-03-10',
            'ordem_id': ordem.id, 'forma_pagamento': 'dinheiro',
        }

        # ACT
        primeira = self.client.post('/api/cash', payload, format='json')
        segunda = self.client.post('/api/cash', payload, format='json')
        atual = self.client.get('/api/cashiers/current')

        # ASSERT
        self.assertEqual(abertura.status_code, 201)
        self.assertEqual(primeira.status_code, 201)
        self.assertEqual(primeira.json()['data']['cliente_nome'], 'Construtora Alfa')
        self.assertEqual(segunda.status_code, 409)
        self.assertEqual(atual.json()['data']['saldo_atual'], 900.0)

    def test_abrir_caixa_duas_vezes(self):
        self.client.post('/api/cashiers/open', {}, format='json')

        response = self.client.post('/api/cashiers/open', {}, format='json')

        self.assertEqual(response.status_code, 409)


# ====================================================================
# DESLOCAMENTO
# ====================================================================

@override_settings(GOOGLE_MAPS_API_KEY='chave-teste')
class DeslocamentoApiTestCase(BaseApiTestCase):

    def _resposta(self, metros):
        resposta = Mock()
        resposta.raise_for_status.return_value = None
        resposta.json.return_value = {
            'status': 'OK',
            'rows': [{'elements': [{
                'status': 'OK',
                'distance': {'value': metros, 'text': '12,5 km'},
                'duration': {'value': 1200, 'text': '20 minutos'},
            }]}],
        }
        return resposta

    @patch('fundacoes.infrastructure.gateways.requests.get')
    def test_preco_por_km_ida_e_volta(self, mock_get):
        """
        Cenário: 12,5 km arredondam para 13 km; R$ 2,00/km em ida e volta.
        """
        # ARRANGE
        ConfiguracaoModel.objects.create(endereco_sede='Rua da Sede, 100 - Campinas')
        regra = RegraDeslocamentoModel.objects.create(
            tipo='per_km', preco_por_km=Decimal('2.00'), ida_e_volta=True, ordem=1
        )
        mock_get.return_value = self._resposta(12500)

        # ACT
        response = self.client.post('/api/distance/calculate', {'clientAddress': 'Rua da Obra, 50'}, format='json')

        # ASSERT
        self.assertEqual(response.status_code, 200)
        dados = response.json()['data']
        self.assertEqual(dados['distanceKm'], 13)
        self.assertEqual(dados['price'], 52.0)
        self.assertEqual(dados['ruleId'], regra.id)
        self.assertEqual(dados['companyAddress'], 'Rua da Sede, 100 - Campinas')
        self.assertEqual(dados['durationText'], '20 minutos')

    @patch('fundacoes.infrastructure.gateways.requests.get')
    def test_sem_endereco_da_empresa(self, mock_get):
        """
        Cenário: Configurações ainda sem o endereço da sede.
        """
        response = self.client.post('/api/distance/calculate', {'clientAddress': 'Rua da Obra, 50'}, format='json')

        self.assertEqual(response.status_code, 400)
        mock_get.assert_not_called()


class ConfiguracaoApiTestCase(BaseApiTestCase):

    def setUp(self):
        super().setUp()
        ConfiguracaoModel.objects.create(
            nome_empresa='Fundações Alfa', endereco_sede='Rua da Sede, 100 | Centro | Campinas - SP',
            sede_rua='Rua da Sede', sede_numero='100', sede_bairro='Centro',
            sede_cidade='Campinas', sede_estado='SP',
        )

    def test_atualizacao_parcial_preserva_endereco_da_sede(self):
        """
        Cenário: PUT só com o telefone não mexe no endereço da sede.
        """
        response = self.client.put('/api/settings', {'telefone': '(19) 3333-1111'}, format='json')

        self.assertEqual(response.status_code, 200)
        dados = response.json()['data']
        self.assertEqual(dados['telefone'], '(19) 3333-1111')
        self.assertEqual(dados['endereco_sede'], 'Rua da Sede, 100 | Centro | Campinas - SP')

    def test_troca_de_um_componente_recompoe_com_os_demais(self):
        """
        Cenário: PUT só com o número; o endereço usa os componentes já salvos.
        """
        response = self.client.put('/api/settings', {'sede_numero': '200'}, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['endereco_sede'], 'Rua da Sede, 200 | Centro | Campinas - SP')


# ====================================================================
# SOLICITAÇÕES (LEADS) E CAPTURA DE LOCALIZAÇÃO
# ====================================================================

class SolicitacaoApiTestCase(BaseApiTestCase):

    def test_lead_convertido_em_cliente_e_orcamento(self):
        """
        Cenário: Lead do site com telefone novo convertido com orçamento.
        """
        # ARRANGE
        criada = self.client.post('/api/orcamento-requests', {
            'nome': 'Carlos Lima',
            'telefone': '(19) 99999-0000',
            'endereco': 'Rua das Flores, 10',
            'servicos': [{'tipo': 'estaca', 'diametro': '30', 'profundidade': '6', 'quantidade': '10'}],
        }, format='json')
        solicitacao_id = criada.json()['data']['id']

        # ACT
        pendentes_antes = self.client.get('/api/orcamento-requests/count/pending').json()['data']['count']
        verificacao = self.client.get(f'/api/orcamento-requests/{solicitacao_id}/check-client')
        conversao = self.client.post(
            f'/api/orcamento-requests/{solicitacao_id}/convert', {'createBudget': True}, format='json'
        )
        pendentes_depois = self.client.get('/api/orcamento-requests/count/pending').json()['data']['count']
        repetida = self.client.post(f'/api/orcamento-requests/{solicitacao_id}/convert', {}, format='json')

        # ASSERT
        self.assertEqual(criada.status_code, 201)
        self.assertEqual(criada.json()['data']['status'], 'pendente')
        self.assertEqual(pendentes_antes, 1)
        self.assertFalse(verificacao.json()['data']['exists'])

        self.assertEqual(conversao.status_code, 200)
        dados = conversao.json()['data']
        self.assertEqual(dados['solicitacao']['status'], 'convertido')
        self.assertTrue(dados['cliente']['documento'].startswith('TEMP_'))
        self.assertEqual(dados['orcamento']['servicos'][0]['diametro'], '30cm')
        self.assertEqual(pendentes_depois, 0)
        self.assertEqual(repetida.status_code, 400)

    def test_lead_sem_servicos(self):
        response = self.client.post('/api/orcamento-requests', {
            'nome': 'Carlos Lima', 'telefone': '(19) 99999-0000', 'servicos': [],
        }, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(SolicitacaoOrcamentoModel.objects.count(), 0)

    def test_arquivadas_ficam_fora_da_listagem(self):
        """
        Cenário: Uma solicitação arquivada só aparece com showArchived.
        """
        # ARRANGE
        SolicitacaoOrcamentoModel.objects.create(seq=1, nome='Ana', telefone='1', arquivado=True)

        # ACT
        padrao = self.client.get('/api/orcamento-requests').json()
        todas = self.client.get('/api/orcamento-requests', {'showArchived': 'true'}).json()

        # ASSERT
        self.assertEqual(padrao['count'], 0)
        self.assertEqual(todas['count'], 1)


class CapturaLocalizacaoApiTestCase(BaseApiTestCase):

    def test_gerar_link_e_consultar_status(self):
        """
        Cenário: Link de captura gerado para o primeiro endereço do cliente.
        """
        # ACT
        gerado = self.client.post('/api/location-capture/generate', {
            'clientId': self.cliente.id, 'addressIndex': 0, 'description': 'Obra principal',
        }, format='json')
        token = gerado.json()['data']['token']
        consulta = self.client.get(f'/api/location-capture/status/{token}')

        # ASSERT
        self.assertEqual(gerado.status_code, 201)
        self.assertEqual(len(token), 64)
        self.assertTrue(gerado.json()['data']['link'].endswith(f'/capturar-localizacao/{token}'))
        self.assertEqual(consulta.status_code, 200)
        self.assertEqual(consulta.json()['data']['status'], 'pending')

    def test_token_desconhecido(self):
        response = self.client.get('/api/location-capture/status/naoexiste')

        self.assertEqual(response.status_code, 404)


# ====================================================================
# PAINEL DE OPERAÇÕES
# ====================================================================

class OperacoesApiTestCase(BaseApiTestCase):

    def test_painel_com_senha_correta(self):
        """
        Cenário: A equipe entra no painel e vê apenas as próprias OS.
        """
        # ARRANGE
        self.criar_ordem()
        outra = EquipeModel.objects.create(nome='Equipe B', membros=['Luiz'])
        self.criar_ordem(seq=2, equipe=outra, equipe_nome='Equipe B')

        # ACT
        response = self.client.post(f'/api/operations/team/{self.equipe.id}', {'password': '1234'}, format='json')

        # ASSERT
        self.assertEqual(response.status_code, 200)
        dados = response.json()['data']
        self.assertEqual(dados['equipe']['nome'], 'Equipe A')
        self.assertNotIn('senha_operacao', dados['equipe'])
        self.assertEqual([o['seq'] for o in dados['ordens']], [1])

    def test_senha_incorreta_e_senha_nao_configurada(self):
        """
        Cenário: Senha errada (401) e equipe sem senha de operação (403).
        """
        # ARRANGE
        sem_senha = EquipeModel.objects.create(nome='Equipe C', membros=['Rui'])

        # ACT
        errada = self.client.post(f'/api/operations/team/{self.equipe.id}', {'password': '0000'}, format='json')
        bloqueada = self.client.post(f'/api/operations/team/{sem_senha.id}', {'password': '1234'}, format='json')

        # ASSERT
        self.assertEqual(errada.status_code, 401)
        self.assertEqual(bloqueada.status_code, 403)

    def test_equipe_inicia_a_propria_os(self):
        """
        Cenário: A equipe muda a OS para em execução; o início é carimbado.
        """
        # ARRANGE
        ordem = self.criar_ordem()

        # ACT
        response = self.client.patch(f'/api/operations/jobs/{ordem.id}', {
            'teamId': self.equipe.id, 'password': '1234', 'status': 'em_execucao',
        }, format='json')

        # ASSERT
        self.assertEqual(response.status_code, 200)
        ordem.refresh_from_db()
        self.assertEqual(ordem.status, 'em_execucao')
        self.assertIsNotNone(ordem.iniciado_em)


# ====================================================================
# AUTENTICAÇÃO E PORTAL DO CLIENTE
# ====================================================================

class AutenticacaoApiTestCase(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.usuario = UsuarioModel.objects.create_user('ana@fundacoes.com.br', 'segredo123', nome='Ana')

    def test_login_do_escritorio(self):
        """
        Cenário: Login com e-mail em maiúsculas, senha errada e usuário inativo.
        """
        # ACT
        ok = self.client.post('/api/auth/login', {'email': 'ANA@fundacoes.com.br', 'password': 'segredo123'},
                              format='json')
        errada = self.client.post('/api/auth/login', {'email': 'ana@fundacoes.com.br', 'password': 'x'},
                                  format='json')
        self.usuario.is_active = False
        self.usuario.save()
        inativo = self.client.post('/api/auth/login', {'email': 'ana@fundacoes.com.br', 'password': 'segredo123'},
                                   format='json')

        # ASSERT
        self.assertEqual(ok.status_code, 200)
        self.assertEqual(ok.json()['data']['email'], 'ana@fundacoes.com.br')
        self.assertNotIn('password', ok.json()['data'])
        self.assertEqual(errada.status_code, 401)
        self.assertEqual(errada.json()['error'], 'Email ou senha inválidos')
        self.assertEqual(inativo.status_code, 403)

    def test_cadastro_e_login_do_cliente_no_portal(self):
        """
        Cenário: Cliente se cadastra, faz login e consulta os próprios dados.
        """
        # ARRANGE
        cadastro = self.client.post('/api/client-auth/register', {
            'nome': 'Paulo Reis', 'email': 'Paulo@Email.com', 'password': 'minhasenha',
        }, format='json')

        # ACT
        login = self.client.post('/api/client-auth/login', {'email': 'paulo@email.com', 'password': 'minhasenha'},
                                 format='json')
        token = login.json()['data']['token']
        sem_token = self.client.get('/api/client-protected/me')
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
        me = self.client.get('/api/client-protected/me')

        # ASSERT
        self.assertEqual(cadastro.status_code, 201)
        self.assertIn('token', cadastro.json()['data'])
        self.assertEqual(login.status_code, 200)
        self.assertEqual(sem_token.status_code, 401)
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.json()['data']['email'], 'paulo@email.com')
        self.assertNotIn('senha', me.json()['data'])

    def test_email_repetido_no_portal(self):
        ClienteModel.objects.create(nome='Paulo', email='paulo@email.com')

        response = self.client.post('/api/client-auth/register', {
            'nome': 'Paulo Reis', 'email': 'paulo@email.com', 'password': 'minhasenha',
        }, format='json')

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['error'], 'Email já cadastrado')


class PortalClienteApiTestCase(BaseApiTestCase):

    def setUp(self):
        super().setUp()
        EnderecoClienteModel.objects.create(cliente=self.cliente, posicao=0, rotulo='Sede', endereco='Rua A, 1')
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {gerar_token_cliente(self.cliente.id)}')

    def test_cliente_gerencia_os_proprios_enderecos(self):
        """
        Cenário: Cliente adiciona uma obra, corrige o número e remove a sede.
        """
        # ACT
        criado = self.client.post('/api/client-protected/addresses', {
            'rotulo': 'Obra Centro', 'endereco': 'Rua B, 2', 'rua': 'Rua B', 'numero': '2',
        }, format='json')
        alterado = self.client.put('/api/client-protected/addresses/1', {'numero': '20'}, format='json')
        removido = self.client.delete('/api/client-protected/addresses/0')
        lista = self.client.get('/api/client-protected/addresses')

        # ASSERT
        self.assertEqual(criado.status_code, 201)
        self.assertEqual(criado.json()['data']['rotulo'], 'Obra Centro')
        self.assertEqual(alterado.status_code, 200)
        self.assertEqual(alterado.json()['data']['numero'], '20')
        self.assertEqual(removido.json(), {'ok': True})
        self.assertEqual([e['rotulo'] for e in lista.json()['data']], ['Obra Centro'])
        self.assertEqual(self.cliente.enderecos.count(), 1)

    def test_endereco_sem_rotulo_ou_inexistente(self):
        sem_rotulo = self.client.post('/api/client-protected/addresses', {'endereco': 'Rua C, 3'}, format='json')
        inexistente = self.client.put('/api/client-protected/addresses/5', {'numero': '1'}, format='json')

        self.assertEqual(sem_rotulo.status_code, 400)
        self.assertIn('rotulo', sem_rotulo.json()['issues']['fieldErrors'])
        self.assertEqual(inexistente.status_code, 404)
        self.assertEqual(inexistente.json()['error'], 'Endereço não encontrado')

    def test_avaliacao_de_ordem_concluida(self):
        """
        Cenário: Cliente avalia a OS concluída com 5 estrelas; a pendente é recusada.
        """
        # ARRANGE
        concluida = self.criar_ordem(status='concluida')
        pendente = self.criar_ordem(seq=2)

        # ACT
        avaliada = self.client.post(f'/api/client-protected/jobs/{concluida.id}/feedback',
                                    {'rating': 5, 'feedback': '  Equipe pontual.  '}, format='json')
        recusada = self.client.post(f'/api/client-protected/jobs/{pendente.id}/feedback',
                                    {'rating': 4}, format='json')
        fora_da_escala = self.client.post(f'/api/client-protected/jobs/{concluida.id}/feedback',
                                          {'rating': 6}, format='json')

        # ASSERT
        self.assertEqual(avaliada.status_code, 200)
        self.assertEqual(avaliada.json()['data']['avaliacao'], 5)
        self.assertEqual(avaliada.json()['data']['feedback'], 'Equipe pontual.')
        self.assertIsNotNone(avaliada.json()['data']['feedback_em'])
        self.assertEqual(recusada.status_code, 400)
        self.assertEqual(recusada.json()['error'], 'Apenas ordens de serviço concluídas podem receber feedback')
        self.assertEqual(fora_da_escala.status_code, 400)

    def test_avaliacao_de_ordem_de_outro_cliente(self):
        outro = ClienteModel.objects.create(nome='Beta Engenharia')
        alheia = self.criar_ordem(cliente=outro, cliente_nome=outro.nome, status='concluida')

        response = self.client.post(f'/api/client-protected/jobs/{alheia.id}/feedback', {'rating': 1}, format='json')

        self.assertEqual(response.status_code, 404)
        alheia.refresh_from_db()
        self.assertIsNone(alheia.avaliacao)


# ====================================================================
# MÍDIAS SOCIAIS
# ====================================================================

class MidiaSocialApiTestCase(TestCase):

    def setUp(self):
        self.client = APIClient()

    def test_aprovar_upload_de_cliente_vai_para_o_fim_da_galeria(self):
        """
        Cenário: Upload de cliente aprovado recebe a próxima posição da galeria.
        """
        # ARRANGE
        MidiaSocialModel.objects.create(
            tipo='imagem', url='https://cdn.exemplo.com/obra1.jpg', titulo='Obra 1', ordem=4, ativo=True
        )
        upload = MidiaSocialModel.objects.create(
            tipo='imagem', url='https://cdn.exemplo.com/cliente.jpg', titulo='Foto do cliente',
            envio_cliente=True, aprovado=False, ativo=False
        )

        # ACT
        response = self.client.post(f'/api/social-media/{upload.id}/approve')
        repetida = self.client.post(f'/api/social-media/{upload.id}/approve')

        # ASSERT
        self.assertEqual(response.status_code, 200)
        upload.refresh_from_db()
        self.assertTrue(upload.aprovado)
        self.assertTrue(upload.ativo)
        self.assertEqual(upload.ordem, 5)
        self.assertEqual(repetida.status_code, 400)


# ====================================================================
# STREAMS SSE
# ====================================================================

class StreamApiTestCase(BaseApiTestCase):

    def test_stream_de_clientes_usa_event_stream(self):
        """
        Cenário: Conexão ao stream de clientes (sem consumir os eventos).
        """
        # ACT
        response = self.client.get('/api/clients/watch')

        # ASSERT
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.streaming)
        self.assertEqual(response['Content-Type'], 'text/event-stream')
        self.assertEqual(response['Cache-Control'], 'no-cache')

    def test_stream_da_equipe_exige_senha(self):
        response = self.client.get(f'/api/operations/team/{self.equipe.id}/watch', {'password': 'errada'})

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()['error'], 'Senha incorreta.')
