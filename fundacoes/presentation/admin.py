# Configuração da interface administrativa do Django para os modelos do back-office.

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from fundacoes.infrastructure.models import (
    Usuario, Cliente, EnderecoCliente, Equipe, Funcionario, Maquina, Equipamento, Manutencao,
    ItemCatalogo, VariacaoPreco, OrdemServico, ServicoOrdem, Orcamento, ServicoOrcamento,
    Caixa, TransacaoCaixa, Documento, RegraDeslocamento, Configuracao, SolicitacaoOrcamento,
    CapturaLocalizacao, MidiaSocial,
)

# ====================================================================
# 1. ADMIN PERSONALIZADO PARA USUÁRIOS (login por e-mail)
# ====================================================================

@admin.register(Usuario)
class UsuarioAdmin(BaseUserAdmin):
    """O modelo não tem 'username': listagem, busca e formulários usam o e-mail."""

    list_display = ('email', 'nome', 'papel', 'is_active', 'last_login')
    list_filter = ('papel', 'is_active')

    fieldsets = (
        (None, {'fields': ('email', 'password')}),
        ('Perfil', {'fields': ('nome', 'papel')}),
        ('Permissões', {'fields': ('is_active', 'is_staff', 'is_superuser')}),
        ('Datas', {'fields': ('last_login', 'date_joined')}),
    )
    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'nome', 'papel', 'password1', 'password2'),
        }),
    )

    search_fields = ('email', 'nome')
    ordering = ('email',)


# ====================================================================
# 2. CLIENTES E CAPTAÇÃO
# ====================================================================

class EnderecoClienteInline(admin.TabularInline):
    model = EnderecoCliente
    extra = 0


@admin.register(Cliente)
class ClienteAdmin(admin.ModelAdmin):
    list_display = ('nome', 'tipo_pessoa', 'documento', 'telefone', 'email', 'criado_em')
    list_filter = ('tipo_pessoa',)
    search_fields = ('nome', 'documento', 'telefone', 'email')
    exclude = ('senha',)
    inlines = [EnderecoClienteInline]


@admin.register(SolicitacaoOrcamento)
class SolicitacaoOrcamentoAdmin(admin.ModelAdmin):
    list_display = ('seq', 'nome', 'telefone', 'status', 'arquivado', 'criado_em')
    list_filter = ('status', 'arquivado', 'origem')
    search_fields = ('nome', 'telefone', 'email')
    readonly_fields = ('seq',)


@admin.register(CapturaLocalizacao)
class CapturaLocalizacaoAdmin(admin.ModelAdmin):
    list_display = ('token', 'cliente', 'indice_endereco', 'status', 'expira_em')
    list_filter = ('status',)


# ====================================================================
# 3. ORDENS DE SERVIÇO E ORÇAMENTOS
# ====================================================================

class ServicoOrdemInline(admin.TabularInline):
    model = ServicoOrdem
    extra = 0
    readonly_fields = ('desconto_valor', 'valor_final')


@admin.register(OrdemServico)
class OrdemServicoAdmin(admin.ModelAdmin):
    list_display = ('seq', 'titulo', 'equipe_nome', 'status', 'data_prevista', 'valor_final', 'recebido')
    list_filter = ('status', 'recebido', 'equipe')
    search_fields = ('titulo', 'cliente_nome', 'local')
    date_hierarchy = 'data_prevista'
    readonly_fields = ('seq', 'titulo', 'desconto_valor', 'valor_final', 'recebido_em', 'assinado_em',
                       'avaliacao', 'feedback', 'feedback_em')
    inlines = [ServicoOrdemInline]


class ServicoOrcamentoInline(admin.TabularInline):
    model = ServicoOrcamento
    extra = 0
    readonly_fields = ('desconto_valor', 'valor_final')


@admin.register(Orcamento)
class OrcamentoAdmin(admin.ModelAdmin):
    list_display = ('seq', 'titulo', 'status', 'valor_final', 'criado_em')
    list_filter = ('status',)
    search_fields = ('titulo', 'cliente_nome')
    readonly_fields = ('seq', 'titulo', 'token_publico', 'aprovado_em', 'rejeitado_em', 'assinado_em')
    inlines = [ServicoOrcamentoInline]


# ====================================================================
# 4. CAIXA
# ====================================================================

class TransacaoCaixaInline(admin.TabularInline):
    """Os lançamentos são feitos pela API; aqui só consulta."""
    model = TransacaoCaixa
    fields = ('tipo', 'valor', 'descricao', 'data', 'forma_pagamento')
    readonly_fields = fields
    extra = 0
    can_delete = False


@admin.register(Caixa)
class CaixaAdmin(admin.ModelAdmin):
    list_display = ('id', 'status', 'aberto_em', 'fechado_em', 'saldo_inicial', 'saldo_final')
    list_filter = ('status',)
    inlines = [TransacaoCaixaInline]


@admin.register(TransacaoCaixa)
class TransacaoCaixaAdmin(admin.ModelAdmin):
    list_display = ('data', 'tipo', 'valor', 'descricao', 'forma_pagamento', 'ordem_titulo')
    list_filter = ('tipo', 'forma_pagamento')
    search_fields = ('descricao', 'cliente_nome', 'ordem_titulo')
    date_hierarchy = 'data'


# ====================================================================
# 5. CATÁLOGO, EQUIPES E FROTA
# ====================================================================

class VariacaoPrecoInline(admin.TabularInline):
    model = VariacaoPreco
    extra = 1


@admin.register(ItemCatalogo)
class ItemCatalogoAdmin(admin.ModelAdmin):
    list_display = ('nome', 'categoria', 'ativo')
    list_filter = ('ativo', 'categoria')
    search_fields = ('nome',)
    inlines = [VariacaoPrecoInline]


@admin.register(Equipe)
class EquipeAdmin(admin.ModelAdmin):
    list_display = ('nome', 'status', 'lider')
    list_filter = ('status',)


@admin.register(Funcionario)
class FuncionarioAdmin(admin.ModelAdmin):
    list_display = ('nome', 'cargo', 'status', 'equipe_nome', 'maquina_nome')
    list_filter = ('status', 'equipe')
    search_fields = ('nome', 'documento')


@admin.register(Maquina)
class MaquinaAdmin(admin.ModelAdmin):
    list_display = ('nome', 'modelo', 'placa', 'status', 'proxima_manutencao')
    list_filter = ('status',)


@admin.register(Equipamento)
class EquipamentoAdmin(admin.ModelAdmin):
    list_display = ('nome', 'tipo', 'numero_serie', 'status', 'proxima_manutencao')
    list_filter = ('status',)


@admin.register(Manutencao)
class ManutencaoAdmin(admin.ModelAdmin):
    list_display = ('item_nome', 'item_tipo', 'tipo', 'data', 'custo')
    list_filter = ('item_tipo', 'tipo')


# ====================================================================
# 6. DEMAIS CADASTROS
# ====================================================================

admin.site.register(Documento)
admin.site.register(RegraDeslocamento)
admin.site.register(Configuracao)
admin.site.register(MidiaSocial)
