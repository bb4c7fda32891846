# Define os modelos do banco de dados do back-office (ORM Django).

from django.db import models
from django.db.models import Q
from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.core.validators import MinValueValidator, MaxValueValidator


DECIMAL_DINHEIRO = dict(max_digits=12, decimal_places=2)
PERCENTUAL = dict(
    max_digits=5, decimal_places=2, null=True, blank=True,
    validators=[MinValueValidator(0), MaxValueValidator(100)]
)

TIPO_SOLO_CATALOGO = [
    ('argiloso', 'Argiloso'),
    ('arenoso', 'Arenoso'),
    ('rochoso', 'Rochoso'),
    ('misturado', 'Misturado'),
    ('outro', 'Outro'),
]

ACESSO_CATALOGO = [
    ('livre', 'Livre'),
    ('limitado', 'Limitado'),
    ('restrito', 'Restrito'),
]


# ====================================================================
# GERENCIADOR DE USUÁRIOS PERSONALIZADO (Para usar email como login)
# ====================================================================

class CustomUserManager(BaseUserManager):
    """
    Gerenciador de usuários onde o email é o identificador único
    para autenticação, em vez do nome de usuário.
    """
    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError('O e-mail deve ser definido')
        email = self.normalize_email(email).lower()
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)
        extra_fields.setdefault('papel', 'admin')

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')

        return self.create_user(email, password, **extra_fields)


# ====================================================================
# USUÁRIOS DO ESCRITÓRIO
# ====================================================================

class Usuario(AbstractUser):
    """Usuário interno; faz login pelo e-mail."""
    PAPEIS = [('admin', 'Administrador'), ('user', 'Usuário')]

    username = None

    email = models.EmailField('Endereço de E-mail', unique=True)
    nome = models.CharField('Nome', max_length=150)
    papel = models.CharField('Papel', max_length=10, choices=PAPEIS, default='user')

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['nome']

    objects = CustomUserManager()

    class Meta:
        verbose_name = 'Usuário'
        verbose_name_plural = 'Usuários'
        db_table = 'infra_usuario'
        ordering = ['nome']

    def __str__(self):
        return self.email


# ====================================================================
# CLIENTES
# ====================================================================

class Cliente(models.Model):
    TIPOS_PESSOA = [('cpf', 'Pessoa Física'), ('cnpj', 'Pessoa Jurídica')]

    nome = models.CharField('Nome', max_length=200)
    tipo_pessoa = models.CharField('Tipo de Pessoa', max_length=4, choices=TIPOS_PESSOA, default='cpf')
    documento = models.CharField('CPF/CNPJ', max_length=60, null=True, blank=True)
    contato = models.CharField('Contato', max_length=150, blank=True, null=True)
    telefone = models.CharField('Telefone', max_length=30, blank=True, null=True)
    email = models.EmailField('E-mail', blank=True, null=True)
    endereco = models.CharField('Endereço Principal', max_length=400, blank=True, null=True)
    senha = models.CharField('Senha do Portal (hash)', max_length=128, blank=True, null=True)
    criado_em = models.DateTimeField(auto_now_add=True)
    atualizado_em = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Cliente'
        verbose_name_plural = 'Clientes'
        db_table = 'cliente'
        ordering = ['-criado_em']
        constraints = [
            models.UniqueConstraint(
                fields=['tipo_pessoa', 'documento'],
                condition=Q(documento__isnull=False),
                name='cliente_documento_unico',
            ),
        ]

    def __str__(self):
        return self.nome


class EnderecoCliente(models.Model):
    """Endereço de obra do cliente; a posição preserva a ordem da lista."""
    cliente = models.ForeignKey(Cliente, on_delete=models.CASCADE, related_name='enderecos')
    posicao = models.PositiveIntegerField(default=0)
    rotulo = models.CharField('Rótulo', max_length=100, blank=True, null=True)
    endereco = models.CharField('Endereço', max_length=400, blank=True, null=True)
    rua = models.CharField('Rua', max_length=200, blank=True, null=True)
    numero = models.CharField('Número', max_length=20, blank=True, null=True)
    bairro = models.CharField('Bairro', max_length=100, blank=True, null=True)
    cidade = models.CharField('Cidade', max_length=100, blank=True, null=True)
    estado = models.CharField('Estado', max_length=50, blank=True, null=True)
    cep = models.CharField('CEP', max_length=10, blank=True, null=True)
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)

    class Meta:
        verbose_name = 'Endereço do Cliente'
        verbose_name_plural = 'Endereços do Cliente'
        db_table = 'cliente_endereco'
        ordering = ['posicao', 'id']

    def __str__(self):
        return f"{self.cliente_id} - {self.rotulo or self.endereco}"


# ====================================================================
# EQUIPES, FUNCIONÁRIOS E FROTA
# ====================================================================

class Equipe(models.Model):
    STATUS = [('ativa', 'Ativa'), ('inativa', 'Inativa')]

    nome = models.CharField('Nome', max_length=100, unique=True)
    status = models.CharField('Status', max_length=10, choices=STATUS, default='ativa')
    lider = models.CharField('Líder', max_length=150, blank=True, null=True)
    membros = models.JSONField('Membros', default=list)
    observacoes = models.TextField('Observações', blank=True, null=True)
    senha_operacao = models.CharField('Senha do Painel de Operações', max_length=100, blank=True, null=True)
    criado_em = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Equipe'
        verbose_name_plural = 'Equipes'
        db_table = 'equipe'
        ordering = ['nome']

    def __str__(self):
        return self.nome


class Maquina(models.Model):
    STATUS = [
        ('disponivel', 'Disponível'),
        ('em_uso', 'Em uso'),
        ('manutencao', 'Em manutenção'),
        ('inativa', 'Inativa'),
    ]

    nome = models.CharField('Nome', max_length=150)
    modelo = models.CharField('Modelo', max_length=100, blank=True, null=True)
    marca = models.CharField('Marca', max_length=100, blank=True, null=True)
    placa = models.CharField('Placa', max_length=20, blank=True, null=True)
    ano = models.PositiveIntegerField('Ano', blank=True, null=True)
    status = models.CharField('Status', max_length=15, choices=STATUS, default='disponivel')
    operador = models.CharField('Operador', max_length=150, blank=True, null=True)
    ultima_manutencao = models.DateField('Última Manutenção', blank=True, null=True)
    proxima_manutencao = models.DateField('Próxima Manutenção', blank=True, null=True)
    observacoes = models.TextField('Observações', blank=True, null=True)
    criado_em = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Máquina'
        verbose_name_plural = 'Máquinas'
        db_table = 'maquina'
        ordering = ['nome']

    def __str__(self):
        return self.nome


class Equipamento(models.Model):
    STATUS = [
        ('disponivel', 'Disponível'),
        ('em_uso', 'Em uso'),
        ('manutencao', 'Em manutenção'),
        ('inativo', 'Inativo'),
    ]

    nome = models.CharField('Nome', max_length=150)
    tipo = models.CharField('Tipo', max_length=100, blank=True, null=True)
    marca = models.CharField('Marca', max_length=100, blank=True, null=True)
    modelo = models.CharField('Modelo', max_length=100, blank=True, null=True)
    numero_serie = models.CharField('Número de Série', max_length=100, blank=True, null=True)
    status = models.CharField('Status', max_length=15, choices=STATUS, default='disponivel')
    ultima_manutencao = models.DateField('Última Manutenção', blank=True, null=True)
    proxima_manutencao = models.DateField('Próxima Manutenção', blank=True, null=True)
    observacoes = models.TextField('Observações', blank=True, null=True)
    criado_em = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Equipamento'
        verbose_name_plural = 'Equipamentos'
        db_table = 'equipamento'
        ordering = ['nome']

    def __str__(self):
        return self.nome


class Funcionario(models.Model):
    STATUS = [
        ('ativo', 'Ativo'),
        ('ferias', 'Férias'),
        ('afastado', 'Afastado'),
        ('inativo', 'Inativo'),
    ]

    nome = models.CharField('Nome', max_length=150)
    cargo = models.CharField('Cargo', max_length=100, blank=True, null=True)
    telefone = models.CharField('Telefone', max_length=30, blank=True, null=True)
    email = models.EmailField('E-mail', blank=True, null=True)
    documento = models.CharField('CPF', max_length=20, blank=True, null=True)
    status = models.CharField('Status', max_length=10, choices=STATUS, default='ativo')
    equipe = models.ForeignKey(Equipe, on_delete=models.SET_NULL, null=True, blank=True, related_name='funcionarios')
    equipe_nome = models.CharField(max_length=100, blank=True, null=True)
    maquina = models.ForeignKey(Maquina, on_delete=models.SET_NULL, null=True, blank=True, related_name='funcionarios')
    maquina_nome = models.CharField(max_length=150, blank=True, null=True)
    data_admissao = models.DateField('Data de Admissão', blank=True, null=True)
    observacoes = models.TextField('Observações', blank=True, null=True)
    criado_em = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Funcionário'
        verbose_name_plural = 'Funcionários'
        db_table = 'funcionario'
        ordering = ['nome']

    def __str__(self):
        return self.nome


class Manutencao(models.Model):
    TIPOS_ITEM = [('equipamento', 'Equipamento'), ('maquina', 'Máquina')]
    TIPOS = [('preventiva', 'Preventiva'), ('corretiva', 'Corretiva')]

    item_tipo = models.CharField('Tipo de Item', max_length=12, choices=TIPOS_ITEM)
    item_id = models.PositiveIntegerField('Item')
    item_nome = models.CharField(max_length=150, blank=True, null=True)
    tipo = models.CharField('Tipo', max_length=12, choices=TIPOS, default='preventiva')
    descricao = models.TextField('Descrição')
    data = models.DateField('Data')
    custo = models.DecimalField('Custo', null=True, blank=True, **DECIMAL_DINHEIRO)
    responsavel = models.CharField('Responsável', max_length=150, blank=True, null=True)
    proxima_manutencao = models.DateField('Próxima Manutenção', blank=True, null=True)
    observacoes = models.TextField('Observações', blank=True, null=True)
    criado_em = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Manutenção'
        verbose_name_plural = 'Manutenções'
        db_table = 'manutencao'
        ordering = ['-data', '-id']

    def __str__(self):
        return f"{self.item_nome} - {self.data}"


# ====================================================================
# CATÁLOGO DE SERVIÇOS (MATRIZ DE PREÇOS)
# ====================================================================

class ItemCatalogo(models.Model):
    nome = models.CharField('Nome', max_length=150)
    descricao = models.TextField('Descrição', blank=True, null=True)
    categoria = models.CharField('Categoria', max_length=100, blank=True, null=True)
    fotos = models.JSONField('Fotos', default=list, blank=True)
    ativo = models.BooleanField('Ativo', default=True)
    criado_em = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Item do Catálogo'
        verbose_name_plural = 'Itens do Catálogo'
        db_table = 'catalogo_item'
        ordering = ['nome']

    def __str__(self):
        return self.nome


class VariacaoPreco(models.Model):
    """Preço e tempo por metro para um (diâmetro, solo, acesso)."""
    item = models.ForeignKey(ItemCatalogo, on_delete=models.CASCADE, related_name='variacoes')
    diametro = models.PositiveIntegerField('Diâmetro (cm)')
    tipo_solo = models.CharField('Tipo de Solo', max_length=10, choices=TIPO_SOLO_CATALOGO)
    acesso = models.CharField('Acesso', max_length=10, choices=ACESSO_CATALOGO)
    preco = models.DecimalField('Preço por metro', **DECIMAL_DINHEIRO)
    tempo_execucao = models.FloatField('Tempo de execução (min/m)', null=True, blank=True)

    class Meta:
        verbose_name = 'Variação de Preço'
        verbose_name_plural = 'Variações de Preço'
        db_table = 'catalogo_variacao'
        ordering = ['diametro', 'id']

    def __str__(self):
        return f"{self.item} - {self.diametro}cm/{self.tipo_solo}/{self.acesso}"


# ====================================================================
# ORDENS DE SERVIÇO E ORÇAMENTOS
# ====================================================================

class OrdemServico(models.Model):
    STATUS = [
        ('pendente', 'Pendente'),
        ('em_execucao', 'Em execução'),
        ('concluida', 'Concluída'),
        ('cancelada', 'Cancelada'),
    ]

    seq = models.PositiveIntegerField('Número', unique=True)
    titulo = models.CharField('Título', max_length=300)
    cliente = models.ForeignKey(Cliente, on_delete=models.SET_NULL, null=True, blank=True, related_name='ordens')
    cliente_nome = models.CharField(max_length=200, blank=True, null=True)
    local = models.CharField('Local da Obra', max_length=400, blank=True, null=True)
    local_latitude = models.FloatField(null=True, blank=True)
    local_longitude = models.FloatField(null=True, blank=True)
    equipe = models.ForeignKey(Equipe, on_delete=models.SET_NULL, null=True, blank=True, related_name='ordens')
    equipe_nome = models.CharField(max_length=100, blank=True, null=True)
    status = models.CharField('Status', max_length=12, choices=STATUS, default='pendente')
    data_prevista = models.DateTimeField('Data Prevista', null=True, blank=True)
    duracao_estimada = models.FloatField('Duração Estimada (min)', null=True, blank=True)
    iniciado_em = models.DateTimeField(null=True, blank=True)
    finalizado_em = models.DateTimeField(null=True, blank=True)
    observacoes = models.TextField('Observações', blank=True, null=True)
    valor = models.DecimalField(null=True, blank=True, **DECIMAL_DINHEIRO)
    desconto_percentual = models.DecimalField(**PERCENTUAL)
    desconto_valor = models.DecimalField(null=True, blank=True, **DECIMAL_DINHEIRO)
    valor_final = models.DecimalField(null=True, blank=True, **DECIMAL_DINHEIRO)
    endereco_selecionado = models.CharField(max_length=400, blank=True, null=True)
    deslocamento_km = models.FloatField(null=True, blank=True)
    deslocamento_preco = models.DecimalField(null=True, blank=True, **DECIMAL_DINHEIRO)
    deslocamento_descricao = models.CharField(max_length=200, blank=True, null=True)
    motivo_cancelamento = models.TextField(blank=True, null=True)
    recebido = models.BooleanField(default=False)
    recebido_em = models.DateTimeField(null=True, blank=True)
    comprovante = models.CharField('Chave do Comprovante', max_length=300, blank=True, null=True)
    assinatura_cliente = models.TextField(blank=True, null=True)
    assinado_em = models.DateTimeField(null=True, blank=True)
    avaliacao = models.PositiveSmallIntegerField('Avaliação do Cliente', null=True, blank=True)
    feedback = models.TextField('Comentário do Cliente', blank=True, null=True)
    feedback_em = models.DateTimeField(null=True, blank=True)
    criado_em = models.DateTimeField(auto_now_add=True)
    atualizado_em = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Ordem de Serviço'
        verbose_name_plural = 'Ordens de Serviço'
        db_table = 'ordem_servico'
        ordering = ['-criado_em']

    def __str__(self):
        return self.titulo


class Orcamento(models.Model):
    STATUS = [
        ('pendente', 'Pendente'),
        ('aprovado', 'Aprovado'),
        ('rejeitado', 'Rejeitado'),
        ('convertido', 'Convertido'),
    ]

    seq = models.PositiveIntegerField('Número', unique=True)
    titulo = models.CharField('Título', max_length=300)
    cliente = models.ForeignKey(Cliente, on_delete=models.SET_NULL, null=True, related_name='orcamentos')
    cliente_nome = models.CharField(max_length=200, blank=True, null=True)
    valor = models.DecimalField(null=True, blank=True, **DECIMAL_DINHEIRO)
    desconto_percentual = models.DecimalField(**PERCENTUAL)
    desconto_valor = models.DecimalField(null=True, blank=True, **DECIMAL_DINHEIRO)
    valor_final = models.DecimalField(null=True, blank=True, **DECIMAL_DINHEIRO)
    status = models.CharField('Status', max_length=12, choices=STATUS, default='pendente')
    observacoes = models.TextField('Observações', blank=True, null=True)
    validade = models.DateField('Validade', null=True, blank=True)
    ordem = models.OneToOneField(
        OrdemServico, on_delete=models.SET_NULL, null=True, blank=True, related_name='orcamento'
    )
    endereco_selecionado = models.CharField(max_length=400, blank=True, null=True)
    deslocamento_km = models.FloatField(null=True, blank=True)
    deslocamento_preco = models.DecimalField(null=True, blank=True, **DECIMAL_DINHEIRO)
    deslocamento_descricao = models.CharField(max_length=200, blank=True, null=True)
    token_publico = models.CharField(max_length=64, unique=True, null=True, blank=True)
    aprovado = models.BooleanField(default=False)
    aprovado_em = models.DateTimeField(null=True, blank=True)
    assinatura_cliente = models.TextField(blank=True, null=True)
    assinado_em = models.DateTimeField(null=True, blank=True)
    rejeitado = models.BooleanField(default=False)
    rejeitado_em = models.DateTimeField(null=True, blank=True)
    motivo_rejeicao = models.TextField(blank=True, null=True)
    criado_em = models.DateTimeField(auto_now_add=True)
    atualizado_em = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Orçamento'
        verbose_name_plural = 'Orçamentos'
        db_table = 'orcamento'
        ordering = ['-criado_em']

    def __str__(self):
        return self.titulo


class ServicoBase(models.Model):
    """Linha de serviço com o snapshot de preço (compartilhada por OS e orçamento)."""
    posicao = models.PositiveIntegerField(default=0)
    catalogo = models.ForeignKey(ItemCatalogo, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    servico = models.CharField('Serviço', max_length=200)
    tipo_local = models.CharField(max_length=50, blank=True, null=True)
    tipo_solo = models.CharField(max_length=50, blank=True, null=True)
    acesso = models.CharField(max_length=50, blank=True, null=True)
    info_spt = models.TextField(blank=True, null=True)
    categorias = models.JSONField(default=list, blank=True)
    diametro = models.CharField(max_length=30, blank=True, null=True)
    profundidade = models.CharField(max_length=30, blank=True, null=True)
    quantidade = models.CharField(max_length=30, blank=True, null=True)
    observacoes = models.TextField(blank=True, null=True)
    preco_base = models.DecimalField(null=True, blank=True, **DECIMAL_DINHEIRO)
    valor = models.DecimalField(null=True, blank=True, **DECIMAL_DINHEIRO)
    desconto_percentual = models.DecimalField(**PERCENTUAL)
    desconto_valor = models.DecimalField(null=True, blank=True, **DECIMAL_DINHEIRO)
    valor_final = models.DecimalField(null=True, blank=True, **DECIMAL_DINHEIRO)
    tempo_execucao = models.FloatField('Tempo de execução (min/m)', null=True, blank=True)

    class Meta:
        abstract = True
        ordering = ['posicao', 'id']

    def __str__(self):
        return self.servico


class ServicoOrdem(ServicoBase):
    ordem = models.ForeignKey(OrdemServico, on_delete=models.CASCADE, related_name='servicos')

    class Meta(ServicoBase.Meta):
        db_table = 'ordem_servico_item'


class ServicoOrcamento(ServicoBase):
    orcamento = models.ForeignKey(Orcamento, on_delete=models.CASCADE, related_name='servicos')

    class Meta(ServicoBase.Meta):
        db_table = 'orcamento_item'


# ====================================================================
# CAIXA
# ====================================================================

class Caixa(models.Model):
    STATUS = [('aberto', 'Aberto'), ('fechado', 'Fechado')]

    status = models.CharField('Status', max_length=8, choices=STATUS, default='aberto')
    aberto_em = models.DateTimeField('Aberto em')
    fechado_em = models.DateTimeField('Fechado em', null=True, blank=True)
    saldo_inicial = models.DecimalField(default=0, validators=[MinValueValidator(0)], **DECIMAL_DINHEIRO)
    saldo_final = models.DecimalField(null=True, blank=True, **DECIMAL_DINHEIRO)
    aberto_por = models.CharField(max_length=150, blank=True, null=True)
    fechado_por = models.CharField(max_length=150, blank=True, null=True)
    observacoes = models.TextField(blank=True, null=True)

    class Meta:
        verbose_name = 'Caixa'
        verbose_name_plural = 'Caixas'
        db_table = 'caixa'
        ordering = ['-aberto_em']

    def __str__(self):
        return f"Caixa {self.id} ({self.status})"


class TransacaoCaixa(models.Model):
    TIPOS = [('entrada', 'Entrada'), ('saida', 'Saída')]
    FORMAS_PAGAMENTO = [
        ('dinheiro', 'Dinheiro'),
        ('pix', 'PIX'),
        ('transferencia', 'Transferência'),
        ('cartao', 'Cartão'),
        ('cheque', 'Cheque'),
        ('outro', 'Outro'),
    ]

    tipo = models.CharField('Tipo', max_length=8, choices=TIPOS)
    valor = models.DecimalField(validators=[MinValueValidator(0.01)], **DECIMAL_DINHEIRO)
    descricao = models.CharField('Descrição', max_length=300)
    data = models.DateField('Data')
    cliente = models.ForeignKey(Cliente, on_delete=models.SET_NULL, null=True, blank=True, related_name='transacoes')
    cliente_nome = models.CharField(max_length=200, blank=True, null=True)
    ordem = models.ForeignKey(OrdemServico, on_delete=models.PROTECT, null=True, blank=True, related_name='transacoes')
    ordem_titulo = models.CharField(max_length=300, blank=True, null=True)
    forma_pagamento = models.CharField(max_length=15, choices=FORMAS_PAGAMENTO, default='dinheiro')
    categoria = models.CharField(max_length=100, blank=True, null=True)
    observacoes = models.TextField(blank=True, null=True)
    comprovante_chave = models.CharField(max_length=300, blank=True, null=True)
    caixa = models.ForeignKey(Caixa, on_delete=models.SET_NULL, null=True, blank=True, related_name='transacoes')
    criado_em = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Transação de Caixa'
        verbose_name_plural = 'Transações de Caixa'
        db_table = 'caixa_transacao'
        ordering = ['-data', '-criado_em']
        constraints = [
            # No máximo uma entrada por OS
            models.UniqueConstraint(
                fields=['ordem'],
                condition=Q(tipo='entrada', ordem__isnull=False),
                name='transacao_entrada_unica_por_ordem',
            ),
        ]

    def __str__(self):
        return f"{self.get_tipo_display()} {self.valor} - {self.descricao}"


# ====================================================================
# DOCUMENTOS, DESLOCAMENTO E CONFIGURAÇÕES
# ====================================================================

class Documento(models.Model):
    TIPOS = [
        ('contrato', 'Contrato'),
        ('proposta', 'Proposta'),
        ('nota_fiscal', 'Nota Fiscal'),
        ('recibo', 'Recibo'),
        ('outro', 'Outro'),
    ]
    STATUS = [
        ('pendente', 'Pendente'),
        ('assinado', 'Assinado'),
        ('cancelado', 'Cancelado'),
        ('arquivado', 'Arquivado'),
    ]

    titulo = models.CharField('Título', max_length=200)
    tipo = models.CharField('Tipo', max_length=12, choices=TIPOS, default='outro')
    status = models.CharField('Status', max_length=10, choices=STATUS, default='pendente')
    descricao = models.TextField('Descrição', blank=True, null=True)
    cliente = models.ForeignKey(Cliente, on_delete=models.SET_NULL, null=True, blank=True, related_name='documentos')
    ordem = models.ForeignKey(OrdemServico, on_delete=models.SET_NULL, null=True, blank=True, related_name='documentos')
    arquivo_chave = models.CharField(max_length=300, blank=True, null=True)
    arquivo_nome = models.CharField(max_length=200, blank=True, null=True)
    arquivo_tamanho = models.PositiveIntegerField(null=True, blank=True)
    arquivo_tipo = models.CharField(max_length=100, blank=True, null=True)
    assinado_em = models.DateTimeField(null=True, blank=True)
    expira_em = models.DateField(null=True, blank=True)
    observacoes = models.TextField(blank=True, null=True)
    criado_em = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Documento'
        verbose_name_plural = 'Documentos'
        db_table = 'documento'
        ordering = ['-criado_em']

    def __str__(self):
        return self.titulo


class RegraDeslocamento(models.Model):
    TIPOS = [('per_km', 'Por km'), ('fixed', 'Valor fixo')]

    tipo = models.CharField('Tipo', max_length=6, choices=TIPOS)
    ate_km = models.FloatField('Até (km)', null=True, blank=True)
    preco_por_km = models.DecimalField('Preço por km', null=True, blank=True, **DECIMAL_DINHEIRO)
    preco_fixo = models.DecimalField('Preço fixo', null=True, blank=True, **DECIMAL_DINHEIRO)
    descricao = models.CharField('Descrição', max_length=200, blank=True, null=True)
    ida_e_volta = models.BooleanField('Ida e volta', default=True)
    ordem = models.IntegerField('Ordem', default=0)

    class Meta:
        verbose_name = 'Regra de Deslocamento'
        verbose_name_plural = 'Regras de Deslocamento'
        db_table = 'regra_deslocamento'
        ordering = ['ordem', 'id']

    def __str__(self):
        limite = f"até {self.ate_km:g}km" if self.ate_km is not None else "qualquer distância"
        return f"{self.get_tipo_display()} ({limite})"


class Configuracao(models.Model):
    """Registro único com os dados da empresa."""
    nome_empresa = models.CharField(max_length=200, blank=True, null=True)
    endereco_sede = models.CharField('Endereço da Sede', max_length=400, blank=True, null=True)
    sede_rua = models.CharField(max_length=200, blank=True, null=True)
    sede_numero = models.CharField(max_length=20, blank=True, null=True)
    sede_bairro = models.CharField(max_length=100, blank=True, null=True)
    sede_cidade = models.CharField(max_length=100, blank=True, null=True)
    sede_estado = models.CharField(max_length=50, blank=True, null=True)
    sede_cep = models.CharField(max_length=10, blank=True, null=True)
    telefone = models.CharField(max_length=30, blank=True, null=True)
    email = models.EmailField(blank=True, null=True)
    assinatura_empresa = models.TextField(blank=True, null=True)
    atualizado_em = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Configuração'
        verbose_name_plural = 'Configurações'
        db_table = 'configuracao'

    def __str__(self):
        return self.nome_empresa or 'Configurações'


# ====================================================================
# CAPTAÇÃO (SOLICITAÇÕES DO SITE E LOCALIZAÇÃO)
# ====================================================================

class SolicitacaoOrcamento(models.Model):
    STATUS = [
        ('pendente', 'Pendente'),
        ('em_contato', 'Em contato'),
        ('convertido', 'Convertido'),
        ('descartado', 'Descartado'),
    ]
    TIPOS_SOLO = [
        ('terra_comum', 'Terra comum'),
        ('argiloso', 'Argiloso'),
        ('arenoso', 'Arenoso'),
        ('rochoso', 'Rochoso'),
        ('nao_sei', 'Não sei'),
    ]
    ACESSOS = [('facil', 'Fácil'), ('medio', 'Médio'), ('dificil', 'Difícil')]

    seq = models.PositiveIntegerField('Número', unique=True)
    nome = models.CharField('Nome', max_length=200)
    telefone = models.CharField('Telefone', max_length=30)
    email = models.EmailField('E-mail', blank=True, null=True)
    endereco = models.CharField('Endereço', max_length=400, blank=True, null=True)
    latitude = models.FloatField(
        null=True, blank=True, validators=[MinValueValidator(-90), MaxValueValidator(90)]
    )
    longitude = models.FloatField(
        null=True, blank=True, validators=[MinValueValidator(-180), MaxValueValidator(180)]
    )
    tipo_local = models.CharField(max_length=50, blank=True, null=True)
    tipo_solo = models.CharField(max_length=12, choices=TIPOS_SOLO, blank=True, null=True)
    acesso = models.CharField(max_length=8, choices=ACESSOS, blank=True, null=True)
    prazo = models.CharField(max_length=100, blank=True, null=True)
    diagnostico_spt = models.TextField(blank=True, null=True)
    status = models.CharField('Status', max_length=12, choices=STATUS, default='pendente')
    observacoes = models.TextField(blank=True, null=True)
    cliente = models.ForeignKey(Cliente, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    orcamento = models.ForeignKey(Orcamento, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    ordem = models.ForeignKey(OrdemServico, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    origem = models.CharField(max_length=50, default='website')
    arquivado = models.BooleanField(default=False)
    arquivado_em = models.DateTimeField(null=True, blank=True)
    servicos = models.JSONField('Serviços', default=list)
    criado_em = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Solicitação de Orçamento'
        verbose_name_plural = 'Solicitações de Orçamento'
        db_table = 'solicitacao_orcamento'
        ordering = ['-criado_em']

    def __str__(self):
        return f"#{self.seq} {self.nome}"


class CapturaLocalizacao(models.Model):
    STATUS = [('pending', 'Pendente'), ('captured', 'Capturada'), ('expired', 'Expirada')]

    token = models.CharField(max_length=64, unique=True)
    cliente = models.ForeignKey(Cliente, on_delete=models.CASCADE, related_name='capturas')
    indice_endereco = models.PositiveIntegerField(default=0)
    descricao = models.CharField(max_length=200, blank=True, null=True)
    tipo_recurso = models.CharField(max_length=50, blank=True, null=True)
    status = models.CharField(max_length=10, choices=STATUS, default='pending')
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)
    endereco = models.CharField(max_length=400, blank=True, null=True)
    rua = models.CharField(max_length=200, blank=True, null=True)
    numero = models.CharField(max_length=20, blank=True, null=True)
    bairro = models.CharField(max_length=100, blank=True, null=True)
    cidade = models.CharField(max_length=100, blank=True, null=True)
    estado = models.CharField(max_length=50, blank=True, null=True)
    cep = models.CharField(max_length=10, blank=True, null=True)
    capturado_em = models.DateTimeField(null=True, blank=True)
    expira_em = models.DateTimeField(db_index=True)
    criado_em = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Captura de Localização'
        verbose_name_plural = 'Capturas de Localização'
        db_table = 'captura_localizacao'
        ordering = ['-criado_em']

    def __str__(self):
        return f"{self.token[:8]}… ({self.status})"


class MidiaSocial(models.Model):
    TIPOS = [('imagem', 'Imagem'), ('video', 'Vídeo')]

    tipo = models.CharField('Tipo', max_length=6, choices=TIPOS)
    url = models.URLField('URL', max_length=500)
    titulo = models.CharField(max_length=200, blank=True, null=True)
    descricao = models.TextField(blank=True, null=True)
    ordem = models.IntegerField(default=0)
    ativo = models.BooleanField(default=True)
    envio_cliente = models.BooleanField('Enviado pelo cliente', default=False)
    aprovado = models.BooleanField(default=False)
    cliente_nome = models.CharField(max_length=200, blank=True, null=True)
    cliente_email = models.EmailField(blank=True, null=True)
    criado_em = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Mídia Social'
        verbose_name_plural = 'Mídias Sociais'
        db_table = 'midia_social'
        ordering = ['ordem', '-criado_em']

    def __str__(self):
        return self.titulo or self.url
