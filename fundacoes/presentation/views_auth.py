# fundacoes/presentation/views_auth.py
"""
Autenticação: login dos usuários do escritório e o portal do cliente
(cadastro, login com JWT e as rotas protegidas do cliente).
"""
import logging

from django.contrib.auth.hashers import check_password, make_password
from django.contrib.auth.models import update_last_login
from rest_framework import status
from rest_framework.exceptions import AuthenticationFailed
from rest_framework.permissions import BasePermission
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import AccessToken

from fundacoes.core import dependency_injection as di
from fundacoes.core.entities import Cliente
from fundacoes.core.exceptions import (
    AcessoNegadoError,
    ConflitoError,
    CredenciaisInvalidasError,
    OrcamentoNaoEncontradoError,
    OrdemServicoNaoEncontradaError,
)
from fundacoes.infrastructure.models import (
    Cliente as ClienteModel,
    Orcamento as OrcamentoModel,
    OrdemServico as OrdemServicoModel,
    Usuario as UsuarioModel,
)
from .serializers import (
    ClienteSerializer,
    EnderecoClienteSerializer,
    EnderecoPortalSerializer,
    FeedbackOrdemSerializer,
    LoginSerializer,
    OrcamentoSerializer,
    OrdemServicoSerializer,
    RegistroClienteSerializer,
    RejeicaoSerializer,
    AssinaturaSerializer,
    UsuarioSerializer,
)
from .views import EnvelopeMixin

logger = logging.getLogger(__name__)


# ====================================================================
# LOGIN DO ESCRITÓRIO
# ====================================================================

class LoginView(EnvelopeMixin, APIView):
    """Confere e-mail e senha do usuário interno e devolve seus dados."""

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        email = serializer.validated_data['email'].strip().lower()

        usuario = UsuarioModel.objects.filter(email__iexact=email).first()
        if usuario is None or not usuario.check_password(serializer.validated_data['password']):
            raise CredenciaisInvalidasError("Email ou senha inválidos")
        if not usuario.is_active:
            raise AcessoNegadoError("Usuário inativo")

        update_last_login(None, usuario)
        logger.info("Login do usuário %s", usuario.pk)
        return Response(UsuarioSerializer(usuario).data)


# ====================================================================
# PORTAL DO CLIENTE: JWT
# ====================================================================

def gerar_token_cliente(cliente_id: int) -> str:
    token = AccessToken()
    token[api_settings.USER_ID_CLAIM] = cliente_id
    return str(token)


class ClienteJWTAuthentication(JWTAuthentication):
    """O token do portal identifica o Cliente, não um usuário do Django."""

    def get_user(self, validated_token):
        cliente_id = validated_token.get(api_settings.USER_ID_CLAIM)
        if cliente_id is None:
            raise AuthenticationFailed("Token sem identificação do cliente.")
        cliente = ClienteModel.objects.filter(pk=cliente_id).first()
        if cliente is None:
            raise AuthenticationFailed("Cliente não encontrado.")
        return cliente


class IsClientePortal(BasePermission):
    def has_permission(self, request, view):
        return isinstance(request.user, ClienteModel)


class RegistroClienteView(EnvelopeMixin, APIView):

    def post(self, request):
        serializer = RegistroClienteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dados = serializer.validated_data
        email = dados['email'].strip().lower()

        if ClienteModel.objects.filter(email__iexact=email).exists():
            raise ConflitoError("Email já cadastrado")

        cliente = di.get_cadastrar_cliente_use_case().executar(Cliente(
            nome=dados['nome'],
            email=email,
            telefone=dados.get('telefone'),
            tipo_pessoa=dados.get('tipo_pessoa') or 'cpf',
            documento=dados.get('documento') or None,
            senha_hash=make_password(dados['password']),
        ))
        logger.info("Cliente %s cadastrado pelo portal", cliente.id)
        return Response(
            {'token': gerar_token_cliente(cliente.id), 'cliente': ClienteSerializer(cliente).data},
            status=status.HTTP_201_CREATED
        )


class LoginClienteView(EnvelopeMixin, APIView):

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        email = serializer.validated_data['email'].strip().lower()

        cliente = ClienteModel.objects.filter(email__iexact=email, senha__isnull=False).first()
        if cliente is None or not check_password(serializer.validated_data['password'], cliente.senha):
            raise CredenciaisInvalidasError("Email ou senha inválidos")
        return Response({'token': gerar_token_cliente(cliente.id), 'cliente': ClienteSerializer(cliente).data})


# ====================================================================
# PORTAL DO CLIENTE: ROTAS PROTEGIDAS
# ====================================================================

class PortalClienteView(EnvelopeMixin, APIView):
    authentication_classes = [ClienteJWTAuthentication]
    permission_classes = [IsClientePortal]

    def orcamentos(self):
        return OrcamentoModel.objects.filter(cliente=self.request.user).prefetch_related('servicos')

    def ordens(self):
        return OrdemServicoModel.objects.filter(cliente=self.request.user).prefetch_related('servicos')


class MeuCadastroView(PortalClienteView):

    def get(self, request):
        return Response(ClienteSerializer(request.user).data)


class MeusOrcamentosView(PortalClienteView):

    def get(self, request):
        return Response(OrcamentoSerializer(self.orcamentos().order_by('-criado_em'), many=True).data)


class MeuOrcamentoView(PortalClienteView):

    def get(self, request, orcamento_id):
        orcamento = self.orcamentos().filter(pk=orcamento_id).first()
        if orcamento is None:
            raise OrcamentoNaoEncontradoError()
        return Response(OrcamentoSerializer(orcamento).data)


class AprovarMeuOrcamentoView(PortalClienteView):

    def post(self, request, orcamento_id):
        serializer = AssinaturaSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        orcamento = di.get_responder_orcamento_use_case().aprovar_pelo_cliente(
            orcamento_id, request.user.id, serializer.validated_data['signature']
        )
        return Response(OrcamentoSerializer(orcamento).data)


class RejeitarMeuOrcamentoView(PortalClienteView):

    def post(self, request, orcamento_id):
        serializer = RejeicaoSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        orcamento = di.get_responder_orcamento_use_case().rejeitar_pelo_cliente(
            orcamento_id, request.user.id, serializer.validated_data['rejectionReason']
        )
        return Response(OrcamentoSerializer(orcamento).data)


class MinhasOrdensView(PortalClienteView):

    def get(self, request):
        return Response(OrdemServicoSerializer(self.ordens().order_by('-data_prevista'), many=True).data)


class MinhaOrdemView(PortalClienteView):

    def get(self, request, ordem_id):
        ordem = self.ordens().filter(pk=ordem_id).first()
        if ordem is None:
            raise OrdemServicoNaoEncontradaError()
        return Response(OrdemServicoSerializer(ordem).data)


class AvaliarMinhaOrdemView(PortalClienteView):

    def post(self, request, ordem_id):
        serializer = FeedbackOrdemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        di.get_avaliar_ordem_use_case().executar(
            ordem_id, request.user.id, serializer.validated_data['rating'], serializer.validated_data.get('feedback')
        )
        return Response(OrdemServicoSerializer(self.ordens().get(pk=ordem_id)).data)


class MeusEnderecosView(PortalClienteView):

    def get(self, request):
        enderecos = di.get_gerenciar_enderecos_cliente_use_case().listar(request.user.id)
        return Response(EnderecoClienteSerializer(enderecos, many=True).data)

    def post(self, request):
        serializer = EnderecoPortalSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        endereco = di.get_gerenciar_enderecos_cliente_use_case().adicionar(request.user.id, serializer.to_entity())
        return Response(EnderecoClienteSerializer(endereco).data, status=status.HTTP_201_CREATED)


class MeuEnderecoView(PortalClienteView):

    def put(self, request, indice):
        serializer = EnderecoPortalSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        endereco = di.get_gerenciar_enderecos_cliente_use_case().atualizar(
            request.user.id, indice, dict(serializer.validated_data)
        )
        return Response(EnderecoClienteSerializer(endereco).data)

    def delete(self, request, indice):
        di.get_gerenciar_enderecos_cliente_use_case().remover(request.user.id, indice)
        return Response(status=status.HTTP_204_NO_CONTENT)
