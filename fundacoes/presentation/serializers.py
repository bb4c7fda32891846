import json
from dataclasses import fields as campos_dataclass

from django.db import transaction
from rest_framework import serializers

from fundacoes.infrastructure.models import (
    Cliente as ClienteModel,
    EnderecoCliente as EnderecoClienteModel,
    OrdemServico as OrdemServicoModel,
    Orcamento as OrcamentoModel,
    TransacaoCaixa as TransacaoCaixaModel,
    Caixa as CaixaModel,
    ItemCatalogo as ItemCatalogoModel,
    VariacaoPreco as VariacaoPrecoModel,
    Funcionario as FuncionarioModel,
    Equipe as EquipeModel,
    Maquina as MaquinaModel,
    Equipamento as EquipamentoModel,
    Manutencao as ManutencaoModel,
    Documento as DocumentoModel,
    Usuario as UsuarioModel,
    MidiaSocial as MidiaSocialModel,
    RegraDeslocamento as RegraDeslocamentoModel,
    Configuracao as ConfiguracaoModel,
    SolicitacaoOrcamento as SolicitacaoOrcamentoModel,
    CapturaLocalizacao as CapturaLocalizacaoModel,
)
from fundacoes.core.entities import (
    Cliente, EnderecoCliente, LinhaServico, OrdemServico, Orcamento, TransacaoCaixa,
    SolicitacaoOrcamento, ServicoSolicitado,
)
from fundacoes.core.exceptions import ConflitoError, ItemNaoEncontradoError


def para_entidade(classe, dados: dict):
    """Monta o dataclass do Core com as chaves que ele conhece."""
    nomes = {campo.name for campo in campos_dataclass(classe)}
    return classe(**{chave: valor for chave, valor in dados.items() if chave in nomes})


# ====================================================================
# CLIENTES
# ====================================================================

class EnderecoClienteSerializer(serializers.ModelSerializer):
    latitude = serializers.FloatField(required=False, allow_null=True, min_value=-90, max_value=90)
    longitude = serializers.FloatField(required=False, allow_null=True, min_value=-180, max_value=180)

    class Meta:
        model = EnderecoClienteModel
        fields = ['rotulo', 'endereco', 'rua', 'numero', 'bairro', 'cidade', 'estado', 'cep',
                  'latitude', 'longitude']


class ClienteSerializer(serializers.ModelSerializer):
    """Leitura e escrita do cliente; a escrita passa pelos casos de uso."""
    enderecos = EnderecoClienteSerializer(many=True, required=False)

    class Meta:
        model = ClienteModel
        fields = ['id', 'nome', 'tipo_pessoa', 'documento', 'contato', 'telefone', 'email',
                  'endereco', 'enderecos', 'criado_em', 'atualizado_em']
        read_only_fields = ['id', 'criado_em', 'atualizado_em']
        # Documento repetido é conflito (409), tratado no caso de uso
        validators = []

    def _dados(self) -> dict:
        dados = dict(self.validated_data)
        if 'enderecos' in dados:
            dados['enderecos'] = [para_entidade(EnderecoCliente, e) for e in dados['enderecos']]
        return dados

    def to_entity(self) -> Cliente:
        return para_entidade(Cliente, self._dados())

    def dados_atualizacao(self) -> dict:
        return self._dados()


class LocalizacaoClienteSerializer(serializers.Serializer):
    addressIndex = serializers.IntegerField(min_value=0)
    latitude = serializers.FloatField(min_value=-90, max_value=90)
    longitude = serializers.FloatField(min_value=-180, max_value=180)


# ====================================================================
# LINHAS DE SERVIÇO, ORDENS E ORÇAMENTOS
# ====================================================================

class LinhaServicoSerializer(serializers.Serializer):
    """Mesmo formato para as linhas da OS e do orçamento."""
    catalogo_id = serializers.IntegerField(required=False, allow_null=True)
    servico = serializers.CharField(max_length=200)
    tipo_local = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    tipo_solo = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    acesso = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    info_spt = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    categorias = serializers.ListField(child=serializers.CharField(), required=False)
    diametro = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    profundidade = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    quantidade = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    observacoes = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    preco_base = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    valor = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True, min_value=0)
    desconto_percentual = serializers.DecimalField(
        max_digits=5, decimal_places=2, required=False, allow_null=True, min_value=0, max_value=100
    )
    desconto_valor = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    valor_final = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    tempo_execucao = serializers.FloatField(required=False, allow_null=True, min_value=0)


CAMPOS_DESLOCAMENTO = ['endereco_selecionado', 'deslocamento_km', 'deslocamento_preco', 'deslocamento_descricao']


class _DocumentoComServicosSerializer(serializers.ModelSerializer):
    """Base das OS e orçamentos: converte linhas de serviço em entidades."""
    entidade = None

    def _dados(self) -> dict:
        dados = dict(self.validated_data)
        if 'servicos' in dados:
            dados['servicos'] = [para_entidade(LinhaServico, linha) for linha in dados['servicos']]
        return dados

    def to_entity(self):
        return para_entidade(self.entidade, self._dados())

    def dados_atualizacao(self) -> dict:
        return self._dados()


class OrdemServicoSerializer(_DocumentoComServicosSerializer):
    entidade = OrdemServico

    cliente_id = serializers.IntegerField(required=False, allow_null=True)
    equipe_id = serializers.IntegerField(required=False, allow_null=True)
    servicos = LinhaServicoSerializer(many=True, required=False)
    desconto_percentual = serializers.DecimalField(
        max_digits=5, decimal_places=2, required=False, allow_null=True, min_value=0, max_value=100
    )

    class Meta:
        model = OrdemServicoModel
        fields = [
            'id', 'seq', 'titulo', 'cliente_id', 'cliente_nome', 'local', 'local_latitude', 'local_longitude',
            'equipe_id', 'equipe_nome', 'status', 'data_prevista', 'duracao_estimada', 'iniciado_em',
            'finalizado_em', 'observacoes', 'servicos', 'valor', 'desconto_percentual', 'desconto_valor',
            'valor_final', *CAMPOS_DESLOCAMENTO, 'motivo_cancelamento', 'recebido', 'recebido_em',
            'comprovante', 'assinatura_cliente', 'assinado_em', 'avaliacao', 'feedback', 'feedback_em',
            'criado_em', 'atualizado_em',
        ]
        read_only_fields = [
            'id', 'seq', 'titulo', 'desconto_valor', 'valor_final', 'recebido', 'recebido_em',
            'assinatura_cliente', 'assinado_em', 'avaliacao', 'feedback', 'feedback_em', 'criado_em',
            'atualizado_em',
        ]


class OrcamentoSerializer(_DocumentoComServicosSerializer):
    entidade = Orcamento

    cliente_id = serializers.IntegerField()
    ordem_id = serializers.IntegerField(read_only=True)
    servicos = LinhaServicoSerializer(many=True, required=False)
    total_servicos = serializers.SerializerMethodField()
    desconto_percentual = serializers.DecimalField(
        max_digits=5, decimal_places=2, required=False, allow_null=True, min_value=0, max_value=100
    )

    class Meta:
        model = OrcamentoModel
        fields = [
            'id', 'seq', 'titulo', 'cliente_id', 'cliente_nome', 'servicos', 'total_servicos', 'valor',
            'desconto_percentual', 'desconto_valor', 'valor_final', 'status', 'observacoes', 'validade',
            'ordem_id', *CAMPOS_DESLOCAMENTO, 'token_publico', 'aprovado', 'aprovado_em',
            'assinatura_cliente', 'assinado_em', 'rejeitado', 'rejeitado_em', 'motivo_rejeicao',
            'criado_em', 'atualizado_em',
        ]
        read_only_fields = [
            'id', 'seq', 'titulo', 'cliente_nome', 'desconto_valor', 'valor_final', 'token_publico',
            'aprovado', 'aprovado_em', 'assinatura_cliente', 'assinado_em', 'rejeitado', 'rejeitado_em',
            'motivo_rejeicao', 'criado_em', 'atualizado_em',
        ]

    def get_total_servicos(self, obj) -> int:
        anotado = getattr(obj, 'total_servicos', None)
        if anotado is not None:
            return anotado
        servicos = obj.servicos
        return len(servicos) if isinstance(servicos, list) else servicos.count()


class ConverterOrcamentoSerializer(serializers.Serializer):
    equipe = serializers.CharField(required=False, allow_blank=True)
    equipe_id = serializers.IntegerField(required=False, allow_null=True)
    data_prevista = serializers.DateTimeField()
    local = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    observacoes = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def validate(self, attrs):
        if not attrs.get('equipe') and not attrs.get('equipe_id'):
            raise serializers.ValidationError("Equipe é obrigatória.")
        return attrs


class RecebimentoSerializer(serializers.Serializer):
    forma_pagamento = serializers.ChoiceField(
        choices=TransacaoCaixaModel.FORMAS_PAGAMENTO, required=False, allow_null=True
    )
    data = serializers.DateField(required=False, allow_null=True)
    observacoes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class AssinaturaSerializer(serializers.Serializer):
    signature = serializers.CharField()


class RejeicaoSerializer(serializers.Serializer):
    rejectionReason = serializers.CharField()


# ====================================================================
# CAIXA
# ====================================================================

class TransacaoCaixaSerializer(serializers.ModelSerializer):
    cliente_id = serializers.IntegerField(required=False, allow_null=True)
    ordem_id = serializers.IntegerField(required=False, allow_null=True)
    caixa_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = TransacaoCaixaModel
        fields = [
            'id', 'tipo', 'valor', 'descricao', 'data', 'cliente_id', 'cliente_nome', 'ordem_id',
            'ordem_titulo', 'forma_pagamento', 'categoria', 'observacoes', 'comprovante_chave',
            'caixa_id', 'criado_em',
        ]
        read_only_fields = ['id', 'ordem_titulo', 'criado_em']
        validators = []

    def to_entity(self) -> TransacaoCaixa:
        return para_entidade(TransacaoCaixa, self.validated_data)


class CaixaSerializer(serializers.ModelSerializer):
    saldo_atual = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = CaixaModel
        fields = ['id', 'status', 'aberto_em', 'fechado_em', 'saldo_inicial', 'saldo_final', 'saldo_atual',
                  'aberto_por', 'fechado_por', 'observacoes']
        read_only_fields = fields


class AbrirCaixaSerializer(serializers.Serializer):
    saldo_inicial = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False, default=0)
    aberto_por = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    observacoes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class FecharCaixaSerializer(serializers.Serializer):
    saldo_final = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    fechado_por = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    observacoes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


# ====================================================================
# CATÁLOGO
# ====================================================================

class VariacaoPrecoSerializer(serializers.ModelSerializer):
    class Meta:
        model = VariacaoPrecoModel
        fields = ['id', 'diametro', 'tipo_solo', 'acesso', 'preco', 'tempo_execucao']
        read_only_fields = ['id']


class ItemCatalogoSerializer(serializers.ModelSerializer):
    """Item do catálogo com a matriz de preços aninhada (substituída a cada gravação)."""
    variacoes = VariacaoPrecoSerializer(many=True)

    class Meta:
        model = ItemCatalogoModel
        fields = ['id', 'nome', 'descricao', 'categoria', 'fotos', 'ativo', 'variacoes', 'criado_em']
        read_only_fields = ['id', 'criado_em']

    def validate_variacoes(self, value):
        if not value:
            raise serializers.ValidationError("Informe ao menos uma variação de preço.")
        return value

    def _gravar_variacoes(self, item, variacoes):
        item.variacoes.all().delete()
        VariacaoPrecoModel.objects.bulk_create(
            [VariacaoPrecoModel(item=item, **variacao) for variacao in variacoes]
        )

    @transaction.atomic
    def create(self, validated_data):
        variacoes = validated_data.pop('variacoes')
        item = ItemCatalogoModel.objects.create(**validated_data)
        self._gravar_variacoes(item, variacoes)
        return item

    @transaction.atomic
    def update(self, instance, validated_data):
        variacoes = validated_data.pop('variacoes', None)
        instance = super().update(instance, validated_data)
        if variacoes is not None:
            self._gravar_variacoes(instance, variacoes)
        return instance


# ====================================================================
# FROTA E PESSOAL
# ====================================================================

class FuncionarioSerializer(serializers.ModelSerializer):
    equipe_id = serializers.PrimaryKeyRelatedField(
        source='equipe', queryset=EquipeModel.objects.all(), required=False, allow_null=True
    )
    maquina_id = serializers.PrimaryKeyRelatedField(
        source='maquina', queryset=MaquinaModel.objects.all(), required=False, allow_null=True
    )

    class Meta:
        model = FuncionarioModel
        fields = ['id', 'nome', 'cargo', 'telefone', 'email', 'documento', 'status', 'equipe_id',
                  'equipe_nome', 'maquina_id', 'maquina_nome', 'data_admissao', 'observacoes', 'criado_em']
        read_only_fields = ['id', 'equipe_nome', 'maquina_nome', 'criado_em']

    def validate(self, attrs):
        # Nomes copiados dos registros vinculados
        if 'equipe' in attrs:
            attrs['equipe_nome'] = attrs['equipe'].nome if attrs['equipe'] else None
        if 'maquina' in attrs:
            attrs['maquina_nome'] = attrs['maquina'].nome if attrs['maquina'] else None
        return attrs


class EquipeSerializer(serializers.ModelSerializer):
    """Equipe com vínculo dos funcionários por `employee_ids`."""
    employee_ids = serializers.ListField(child=serializers.IntegerField(), write_only=True, required=False)
    funcionarios = serializers.SerializerMethodField()

    class Meta:
        model = EquipeModel
        fields = ['id', 'nome', 'status', 'lider', 'membros', 'observacoes', 'senha_operacao',
                  'employee_ids', 'funcionarios', 'criado_em']
        read_only_fields = ['id', 'criado_em']
        extra_kwargs = {'senha_operacao': {'write_only': True}}

    def get_funcionarios(self, obj):
        return [{'id': f.id, 'nome': f.nome} for f in obj.funcionarios.all()]

    def validate_membros(self, value):
        if not value:
            raise serializers.ValidationError("A equipe precisa de ao menos um membro.")
        return value

    def _vincular(self, equipe, ids):
        if ids is None:
            return
        equipe.funcionarios.exclude(pk__in=ids).update(equipe=None, equipe_nome=None)
        FuncionarioModel.objects.filter(pk__in=ids).update(equipe=equipe, equipe_nome=equipe.nome)

    @transaction.atomic
    def create(self, validated_data):
        ids = validated_data.pop('employee_ids', None)
        equipe = super().create(validated_data)
        self._vincular(equipe, ids)
        return equipe

    @transaction.atomic
    def update(self, instance, validated_data):
        ids = validated_data.pop('employee_ids', None)
        nome_anterior = instance.nome
        equipe = super().update(instance, validated_data)
        if equipe.nome != nome_anterior:
            equipe.funcionarios.update(equipe_nome=equipe.nome)
        self._vincular(equipe, ids)
        return equipe


class MaquinaSerializer(serializers.ModelSerializer):
    class Meta:
        model = MaquinaModel
        fields = '__all__'


class EquipamentoSerializer(serializers.ModelSerializer):
    class Meta:
        model = EquipamentoModel
        fields = '__all__'


class ManutencaoSerializer(serializers.ModelSerializer):
    MODELOS_ITEM = {'equipamento': EquipamentoModel, 'maquina': MaquinaModel}

    class Meta:
        model = ManutencaoModel
        fields = '__all__'
        read_only_fields = ['item_nome', 'criado_em']

    def _item(self, attrs):
        item_tipo = attrs.get('item_tipo') or getattr(self.instance, 'item_tipo', None)
        item_id = attrs.get('item_id') or getattr(self.instance, 'item_id', None)
        item = self.MODELOS_ITEM[item_tipo].objects.filter(pk=item_id).first()
        if item is None:
            rotulo = 'Equipamento' if item_tipo == 'equipamento' else 'Máquina'
            raise ItemNaoEncontradoError(f"{rotulo} não encontrado(a)")
        return item

    def validate(self, attrs):
        if self.instance is None or 'item_id' in attrs or 'item_tipo' in attrs:
            attrs['item_nome'] = self._item(attrs).nome
        return attrs

    @transaction.atomic
    def save(self, **kwargs):
        manutencao = super().save(**kwargs)
        if manutencao.proxima_manutencao:
            item = self._item({'item_tipo': manutencao.item_tipo, 'item_id': manutencao.item_id})
            item.ultima_manutencao = manutencao.data
            item.proxima_manutencao = manutencao.proxima_manutencao
            item.save(update_fields=['ultima_manutencao', 'proxima_manutencao'])
        return manutencao


# ====================================================================
# DOCUMENTOS, USUÁRIOS, MÍDIAS E CONFIGURAÇÕES
# ====================================================================

class DocumentoSerializer(serializers.ModelSerializer):
    cliente_id = serializers.PrimaryKeyRelatedField(
        source='cliente', queryset=ClienteModel.objects.all(), required=False, allow_null=True
    )
    ordem_id = serializers.PrimaryKeyRelatedField(
        source='ordem', queryset=OrdemServicoModel.objects.all(), required=False, allow_null=True
    )

    class Meta:
        model = DocumentoModel
        fields = ['id', 'titulo', 'tipo', 'status', 'descricao', 'cliente_id', 'ordem_id', 'arquivo_chave',
                  'arquivo_nome', 'arquivo_tamanho', 'arquivo_tipo', 'assinado_em', 'expira_em',
                  'observacoes', 'criado_em']
        read_only_fields = ['id', 'criado_em']


class UsuarioSerializer(serializers.ModelSerializer):
    """Usuários do escritório; a senha nunca é devolvida."""
    ativo = serializers.BooleanField(source='is_active', required=False)
    password = serializers.CharField(write_only=True, required=False, min_length=6)

    class Meta:
        model = UsuarioModel
        fields = ['id', 'email', 'nome', 'papel', 'ativo', 'password', 'date_joined', 'last_login']
        read_only_fields = ['id', 'date_joined', 'last_login']
        extra_kwargs = {'email': {'validators': []}}

    def validate_email(self, value):
        value = value.strip().lower()
        existentes = UsuarioModel.objects.filter(email__iexact=value)
        if self.instance is not None:
            existentes = existentes.exclude(pk=self.instance.pk)
        if existentes.exists():
            raise ConflitoError("Email já cadastrado")
        return value

    def validate(self, attrs):
        if self.instance is None and not attrs.get('password'):
            raise serializers.ValidationError({'password': ["Senha é obrigatória."]})
        return attrs

    def create(self, validated_data):
        password = validated_data.pop('password')
        return UsuarioModel.objects.create_user(password=password, **validated_data)

    def update(self, instance, validated_data):
        password = validated_data.pop('password', None)
        instance = super().update(instance, validated_data)
        if password:
            instance.set_password(password)
            instance.save(update_fields=['password'])
        return instance


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField()


class MidiaSocialSerializer(serializers.ModelSerializer):
    class Meta:
        model = MidiaSocialModel
        fields = '__all__'


class ReordenarMidiasSerializer(serializers.Serializer):
    items = serializers.ListField(child=serializers.DictField(), allow_empty=False)

    def validate_items(self, value):
        for item in value:
            if 'id' not in item or 'ordem' not in item:
                raise serializers.ValidationError("Cada item precisa de id e ordem.")
        return value


class RegraDeslocamentoSerializer(serializers.ModelSerializer):
    class Meta:
        model = RegraDeslocamentoModel
        fields = ['id', 'tipo', 'ate_km', 'preco_por_km', 'preco_fixo', 'descricao', 'ida_e_volta', 'ordem']
        read_only_fields = ['id']

    def validate(self, attrs):
        def atual(campo):
            return attrs[campo] if campo in attrs else getattr(self.instance, campo, None)

        tipo = atual('tipo')
        if tipo == 'per_km' and atual('preco_por_km') is None:
            raise serializers.ValidationError({'preco_por_km': ["Obrigatório para o tipo por km."]})
        if tipo == 'fixed' and atual('preco_fixo') is None:
            raise serializers.ValidationError({'preco_fixo': ["Obrigatório para o tipo valor fixo."]})
        return attrs


class ConfiguracaoSerializer(serializers.ModelSerializer):
    class Meta:
        model = ConfiguracaoModel
        fields = ['id', 'nome_empresa', 'endereco_sede', 'sede_rua', 'sede_numero', 'sede_bairro',
                  'sede_cidade', 'sede_estado', 'sede_cep', 'telefone', 'email', 'assinatura_empresa',
                  'atualizado_em']
        read_only_fields = ['id', 'atualizado_em']

    CAMPOS_SEDE = ('rua', 'numero', 'bairro', 'cidade', 'estado', 'cep')

    def validate(self, attrs):
        # Só recompõe o endereço quando vieram componentes sem o texto pronto.
        enviados = [c for c in self.CAMPOS_SEDE if f'sede_{c}' in attrs]
        if not enviados or attrs.get('endereco_sede'):
            return attrs

        def atual(campo):
            chave = f'sede_{campo}'
            return attrs[chave] if chave in attrs else getattr(self.instance, chave, None)

        formatado = EnderecoCliente(**{c: atual(c) for c in self.CAMPOS_SEDE}).formatar()
        if formatado:
            attrs['endereco_sede'] = formatado
        return attrs


class DistanciaSerializer(serializers.Serializer):
    clientAddress = serializers.CharField()


# ====================================================================
# CAPTAÇÃO
# ====================================================================

class ServicoSolicitadoSerializer(serializers.Serializer):
    tipo = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    tipo_outro = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    servico_id = serializers.IntegerField(required=False, allow_null=True)
    servico_nome = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    diametro = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    profundidade = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    profundidade_outro = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    quantidade = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    quantidade_outro = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class SolicitacaoOrcamentoSerializer(serializers.ModelSerializer):
    servicos = ServicoSolicitadoSerializer(many=True)
    cliente_id = serializers.IntegerField(read_only=True)
    orcamento_id = serializers.IntegerField(read_only=True)
    ordem_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = SolicitacaoOrcamentoModel
        fields = [
            'id', 'seq', 'nome', 'telefone', 'email', 'endereco', 'latitude', 'longitude', 'tipo_local',
            'tipo_solo', 'acesso', 'prazo', 'diagnostico_spt', 'servicos', 'status', 'observacoes',
            'cliente_id', 'orcamento_id', 'ordem_id', 'origem', 'arquivado', 'arquivado_em', 'criado_em',
        ]
        read_only_fields = ['id', 'seq', 'status', 'arquivado', 'arquivado_em', 'criado_em']

    def validate_servicos(self, value):
        if not value:
            raise serializers.ValidationError("Informe ao menos um serviço.")
        return value

    def to_entity(self) -> SolicitacaoOrcamento:
        dados = dict(self.validated_data)
        dados['servicos'] = [para_entidade(ServicoSolicitado, s) for s in dados['servicos']]
        return para_entidade(SolicitacaoOrcamento, dados)


class AtualizarSolicitacaoSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=SolicitacaoOrcamentoModel.STATUS, required=False)
    observacoes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    arquivado = serializers.BooleanField(required=False)


class ConverterSolicitacaoSerializer(serializers.Serializer):
    createBudget = serializers.BooleanField(required=False, default=False)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class ConverterSolicitacaoEmOrcamentoSerializer(serializers.Serializer):
    clientId = serializers.IntegerField()
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class CapturaLocalizacaoSerializer(serializers.ModelSerializer):
    cliente_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = CapturaLocalizacaoModel
        fields = ['token', 'cliente_id', 'indice_endereco', 'descricao', 'tipo_recurso', 'status', 'latitude',
                  'longitude', 'endereco', 'rua', 'numero', 'bairro', 'cidade', 'estado', 'cep',
                  'capturado_em', 'expira_em']
        read_only_fields = fields


class GerarCapturaSerializer(serializers.Serializer):
    clientId = serializers.IntegerField()
    addressIndex = serializers.IntegerField(min_value=0)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    resourceType = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class CoordenadasSerializer(serializers.Serializer):
    latitude = serializers.FloatField(min_value=-90, max_value=90)
    longitude = serializers.FloatField(min_value=-180, max_value=180)


# ====================================================================
# OPERAÇÕES DAS EQUIPES E PORTAL DO CLIENTE
# ====================================================================

class SenhaEquipeSerializer(serializers.Serializer):
    password = serializers.CharField(required=False, allow_blank=True)


class AtualizarOrdemEquipeSerializer(serializers.Serializer):
    teamId = serializers.IntegerField()
    password = serializers.CharField(required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=OrdemServicoModel.STATUS, required=False)
    startedAt = serializers.DateTimeField(required=False, allow_null=True)
    finishedAt = serializers.DateTimeField(required=False, allow_null=True)

    def dados(self) -> dict:
        mapa = {'status': 'status', 'startedAt': 'iniciado_em', 'finishedAt': 'finalizado_em'}
        return {mapa[chave]: valor for chave, valor in self.validated_data.items() if chave in mapa}


class RegistroClienteSerializer(serializers.Serializer):
    nome = serializers.CharField(max_length=200)
    email = serializers.EmailField()
    password = serializers.CharField(min_length=6, write_only=True)
    telefone = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    tipo_pessoa = serializers.ChoiceField(choices=ClienteModel.TIPOS_PESSOA, required=False, default='cpf')
    documento = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class EnderecoPortalSerializer(EnderecoClienteSerializer):
    """Endereço cadastrado pelo cliente: rótulo e texto obrigatórios."""
    rotulo = serializers.CharField(max_length=100)
    endereco = serializers.CharField(max_length=400)

    def to_entity(self) -> EnderecoCliente:
        return para_entidade(EnderecoCliente, self.validated_data)


class FeedbackOrdemSerializer(serializers.Serializer):
    rating = serializers.IntegerField(min_value=0, max_value=5)
    feedback = serializers.CharField(required=False, allow_blank=True, allow_null=True)


def servicos_da_consulta(texto):
    """
    Lê o parâmetro `services` da agenda (JSON com tempo por metro, quantidade
    e profundidade). Conteúdo inválido é ignorado e vale a duração padrão.
    """
    if not texto:
        return []
    try:
        itens = json.loads(texto)
    except ValueError:
        return []
    if not isinstance(itens, list):
        return []
    linhas = []
    for item in itens:
        if not isinstance(item, dict):
            continue
        linhas.append(LinhaServico(
            servico=item.get('servico') or item.get('service') or '',
            tempo_execucao=item.get('tempo_execucao', item.get('executionTime')),
            quantidade=item.get('quantidade'),
            profundidade=item.get('profundidade'),
        ))
    return linhas
