"""
Define as rotas da API REST do back-office (/api/...).
Os ViewSets entram pelo DefaultRouter; streams SSE, portal do cliente e
rotas avulsas são declarados antes para não colidir com o lookup de detalhe.
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views, views_auth, views_stream

# Configuração do Router para ViewSets (API REST), sem barra final
router = DefaultRouter(trailing_slash=False)
router.register(r'clients', views.ClienteViewSet, basename='clients')
router.register(r'jobs', views.OrdemServicoViewSet, basename='jobs')
router.register(r'budgets', views.OrcamentoViewSet, basename='budgets')
router.register(r'cash', views.TransacaoCaixaViewSet, basename='cash')
router.register(r'cashiers', views.CaixaViewSet, basename='cashiers')
router.register(r'catalog', views.ItemCatalogoViewSet, basename='catalog')
router.register(r'employees', views.FuncionarioViewSet, basename='employees')
router.register(r'teams', views.EquipeViewSet, basename='teams')
router.register(r'machines', views.MaquinaViewSet, basename='machines')
router.register(r'equipment', views.EquipamentoViewSet, basename='equipment')
router.register(r'maintenance', views.ManutencaoViewSet, basename='maintenance')
router.register(r'documents', views.DocumentoViewSet, basename='documents')
router.register(r'users', views.UsuarioViewSet, basename='users')
router.register(r'social-media', views.MidiaSocialViewSet, basename='social-media')
router.register(r'travel-pricing', views.RegraDeslocamentoViewSet, basename='travel-pricing')
router.register(r'orcamento-requests', views.SolicitacaoOrcamentoViewSet, basename='orcamento-requests')


urlpatterns = [
    # ====================================================================
    # 1. STREAMS SSE
    # ====================================================================
    path('clients/watch', views_stream.clientes_watch, name='clients_watch'),
    path('orcamento-requests/watch', views_stream.solicitacoes_watch, name='leads_watch'),
    path('orcamento-requests/count/watch', views_stream.contagem_watch, name='leads_count_watch'),
    path('operations/team/<int:equipe_id>/watch', views_stream.equipe_watch, name='operations_watch'),

    # ====================================================================
    # 2. AUTENTICAÇÃO E PORTAL DO CLIENTE
    # ====================================================================
    path('auth/login', views_auth.LoginView.as_view(), name='auth_login'),
    path('client-auth/register', views_auth.RegistroClienteView.as_view(), name='client_register'),
    path('client-auth/login', views_auth.LoginClienteView.as_view(), name='client_login'),
    path('client-protected/me', views_auth.MeuCadastroView.as_view(), name='portal_me'),
    path('client-protected/budgets', views_auth.MeusOrcamentosView.as_view(), name='portal_budgets'),
    path('client-protected/budgets/<int:orcamento_id>', views_auth.MeuOrcamentoView.as_view(),
         name='portal_budget'),
    path('client-protected/budgets/<int:orcamento_id>/approve', views_auth.AprovarMeuOrcamentoView.as_view(),
         name='portal_budget_approve'),
    path('client-protected/budgets/<int:orcamento_id>/reject', views_auth.RejeitarMeuOrcamentoView.as_view(),
         name='portal_budget_reject'),
    path('client-protected/jobs', views_auth.MinhasOrdensView.as_view(), name='portal_jobs'),
    path('client-protected/jobs/<int:ordem_id>', views_auth.MinhaOrdemView.as_view(), name='portal_job'),
    path('client-protected/jobs/<int:ordem_id>/feedback', views_auth.AvaliarMinhaOrdemView.as_view(),
         name='portal_job_feedback'),
    path('client-protected/addresses', views_auth.MeusEnderecosView.as_view(), name='portal_addresses'),
    path('client-protected/addresses/<int:indice>', views_auth.MeuEnderecoView.as_view(),
         name='portal_address'),

    # ====================================================================
    # 3. ROTAS AVULSAS
    # ====================================================================
    path('settings', views.ConfiguracaoView.as_view(), name='settings'),
    path('distance/calculate', views.CalcularDistanciaView.as_view(), name='distance_calculate'),
    path('location-capture/generate', views.GerarCapturaView.as_view(), name='capture_generate'),
    path('location-capture/capture/<str:token>', views.RegistrarCapturaView.as_view(), name='capture_register'),
    path('location-capture/status/<str:token>', views.StatusCapturaView.as_view(), name='capture_status'),
    path('operations/team/<int:equipe_id>', views.PainelEquipeView.as_view(), name='operations_team'),
    path('operations/jobs/<int:ordem_id>', views.AtualizarOrdemEquipeView.as_view(), name='operations_job'),

    # ====================================================================
    # 4. VIEWSETS
    # ====================================================================
    path('', include(router.urls)),
]
