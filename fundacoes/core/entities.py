import re
from dataclasses import dataclass, field
from decimal import Decimal
from datetime import date, datetime
from typing import List, Optional

# ====================================================================
# ENTIDADES CORE
# Representam os objetos de negócio puros.
# ====================================================================

def ler_inteiro(texto, padrao: int = 0) -> int:
    """Lê o inteiro inicial de um texto livre ("3 estacas" -> 3)."""
    if texto is None:
        return padrao
    achado = re.match(r'\s*[-+]?\d+', str(texto))
    if not achado:
        return padrao
    return int(achado.group()) or padrao


def ler_decimal(texto, padrao: float = 0.0) -> float:
    """Lê o número inicial de um texto livre ("2,5m" -> 2.5)."""
    if texto is None:
        return padrao
    achado = re.match(r'\s*[-+]?\d+(?:[.,]\d+)?', str(texto))
    if not achado:
        return padrao
    return float(achado.group().replace(',', '.')) or padrao


@dataclass
class EnderecoCliente:
    """Um dos endereços (obras) do cliente, opcionalmente geolocalizado."""
    rotulo: Optional[str] = None
    endereco: Optional[str] = None
    rua: Optional[str] = None
    numero: Optional[str] = None
    bairro: Optional[str] = None
    cidade: Optional[str] = None
    estado: Optional[str] = None
    cep: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    def formatar(self) -> str:
        """Monta "rua, numero | bairro | cidade - estado | cep" ignorando partes vazias."""
        partes = []
        logradouro = ', '.join(p for p in (self.rua, self.numero) if p)
        if logradouro:
            partes.append(logradouro)
        if self.bairro:
            partes.append(self.bairro)
        cidade_uf = ' - '.join(p for p in (self.cidade, self.estado) if p)
        if cidade_uf:
            partes.append(cidade_uf)
        if self.cep:
            partes.append(self.cep)
        return ' | '.join(partes)

    @property
    def geolocalizado(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass
class Cliente:
    """Entidade do Cliente (pessoa física ou jurídica)."""
    nome: str
    tipo_pessoa: str = 'cpf'
    documento: Optional[str] = None
    contato: Optional[str] = None
    telefone: Optional[str] = None
    email: Optional[str] = None
    endereco: Optional[str] = None
    enderecos: List[EnderecoCliente] = field(default_factory=list)
    senha_hash: Optional[str] = None
    id: Optional[int] = None
    criado_em: Optional[datetime] = None


@dataclass
class LinhaServico:
    """Linha de serviço de uma OS ou orçamento, com o snapshot de preço."""
    servico: str
    catalogo_id: Optional[int] = None
    tipo_local: Optional[str] = None
    tipo_solo: Optional[str] = None
    acesso: Optional[str] = None
    info_spt: Optional[str] = None
    categorias: List[str] = field(default_factory=list)
    diametro: Optional[str] = None
    profundidade: Optional[str] = None
    quantidade: Optional[str] = None
    observacoes: Optional[str] = None
    preco_base: Optional[Decimal] = None
    valor: Optional[Decimal] = None
    desconto_percentual: Optional[Decimal] = None
    desconto_valor: Optional[Decimal] = None
    valor_final: Optional[Decimal] = None
    tempo_execucao: Optional[float] = None  # minutos por metro

    @property
    def minutos_execucao(self) -> float:
        """Tempo por metro x quantidade x profundidade; zero sem tempo ou quantidade."""
        tempo = ler_decimal(self.tempo_execucao, 0.0)
        if not tempo or not self.quantidade:
            return 0.0
        quantidade = ler_inteiro(self.quantidade, 1)
        profundidade = ler_decimal(self.profundidade, 1.0)
        return tempo * quantidade * profundidade


@dataclass
class OrdemServico:
    """Entidade da Ordem de Serviço (OS)."""
    seq: Optional[int] = None
    titulo: Optional[str] = None
    cliente_id: Optional[int] = None
    cliente_nome: Optional[str] = None
    local: Optional[str] = None
    local_latitude: Optional[float] = None
    local_longitude: Optional[float] = None
    equipe_id: Optional[int] = None
    equipe_nome: Optional[str] = None
    status: str = 'pendente'
    data_prevista: Optional[datetime] = None
    duracao_estimada: Optional[float] = None
    iniciado_em: Optional[datetime] = None
    finalizado_em: Optional[datetime] = None
    observacoes: Optional[str] = None
    servicos: List[LinhaServico] = field(default_factory=list)
    valor: Optional[Decimal] = None
    desconto_percentual: Optional[Decimal] = None
    desconto_valor: Optional[Decimal] = None
    valor_final: Optional[Decimal] = None
    endereco_selecionado: Optional[str] = None
    deslocamento_km: Optional[float] = None
    deslocamento_preco: Optional[Decimal] = None
    deslocamento_descricao: Optional[str] = None
    motivo_cancelamento: Optional[str] = None
    recebido: bool = False
    recebido_em: Optional[datetime] = None
    comprovante: Optional[str] = None
    assinatura_cliente: Optional[str] = None
    assinado_em: Optional[datetime] = None
    avaliacao: Optional[int] = None
    feedback: Optional[str] = None
    feedback_em: Optional[datetime] = None
    id: Optional[int] = None
    criado_em: Optional[datetime] = None


@dataclass
class Orcamento:
    """Entidade do Orçamento, anterior à execução da OS."""
    cliente_id: Optional[int] = None
    seq: Optional[int] = None
    titulo: Optional[str] = None
    cliente_nome: Optional[str] = None
    servicos: List[LinhaServico] = field(default_factory=list)
    valor: Optional[Decimal] = None
    desconto_percentual: Optional[Decimal] = None
    desconto_valor: Optional[Decimal] = None
    valor_final: Optional[Decimal] = None
    status: str = 'pendente'
    observacoes: Optional[str] = None
    validade: Optional[date] = None
    ordem_id: Optional[int] = None
    endereco_selecionado: Optional[str] = None
    deslocamento_km: Optional[float] = None
    deslocamento_preco: Optional[Decimal] = None
    deslocamento_descricao: Optional[str] = None
    token_publico: Optional[str] = None
    aprovado: bool = False
    aprovado_em: Optional[datetime] = None
    assinatura_cliente: Optional[str] = None
    assinado_em: Optional[datetime] = None
    rejeitado: bool = False
    rejeitado_em: Optional[datetime] = None
    motivo_rejeicao: Optional[str] = None
    id: Optional[int] = None
    criado_em: Optional[datetime] = None

    @property
    def processado(self) -> bool:
        return self.aprovado or self.rejeitado


@dataclass
class Equipe:
    """Equipe de campo; a senha de operação libera o painel da equipe."""
    nome: str
    status: str = 'ativa'
    lider: Optional[str] = None
    membros: List[str] = field(default_factory=list)
    observacoes: Optional[str] = None
    senha_operacao: Optional[str] = None
    id: Optional[int] = None


@dataclass
class TransacaoCaixa:
    """Lançamento simples (entrada ou saída) vinculado a uma sessão de caixa."""
    tipo: str
    valor: Decimal
    descricao: str
    data: date
    cliente_id: Optional[int] = None
    cliente_nome: Optional[str] = None
    ordem_id: Optional[int] = None
    ordem_titulo: Optional[str] = None
    forma_pagamento: str = 'dinheiro'
    categoria: Optional[str] = None
    observacoes: Optional[str] = None
    comprovante_chave: Optional[str] = None
    caixa_id: Optional[int] = None
    id: Optional[int] = None
    criado_em: Optional[datetime] = None


@dataclass
class Caixa:
    """Sessão do caixa (aberto/fechado)."""
    aberto_em: datetime
    saldo_inicial: Decimal = Decimal('0')
    status: str = 'aberto'
    aberto_por: Optional[str] = None
    fechado_em: Optional[datetime] = None
    saldo_final: Optional[Decimal] = None
    fechado_por: Optional[str] = None
    observacoes: Optional[str] = None
    saldo_atual: Optional[Decimal] = None
    id: Optional[int] = None


@dataclass
class VariacaoPreco:
    """Linha da matriz de preços: (diâmetro, solo, acesso) -> preço e tempo por metro."""
    diametro: float
    tipo_solo: str
    acesso: str
    preco: Decimal
    tempo_execucao: Optional[float] = None


@dataclass
class ItemCatalogo:
    nome: str
    descricao: Optional[str] = None
    categoria: Optional[str] = None
    ativo: bool = True
    variacoes: List[VariacaoPreco] = field(default_factory=list)
    id: Optional[int] = None

    def buscar_variacao(self, diametro: int, tipo_solo: str, acesso: str) -> Optional[VariacaoPreco]:
        return next(
            (v for v in self.variacoes
             if int(v.diametro) == diametro and v.tipo_solo == tipo_solo and v.acesso == acesso),
            None
        )


@dataclass
class RegraDeslocamento:
    """Faixa de distância da tabela de deslocamento."""
    tipo: str  # 'per_km' ou 'fixed'
    ate_km: Optional[float] = None
    preco_por_km: Optional[Decimal] = None
    preco_fixo: Optional[Decimal] = None
    descricao: Optional[str] = None
    ida_e_volta: bool = True
    ordem: int = 0
    id: Optional[int] = None


@dataclass
class Configuracao:
    """Configurações da empresa (registro único)."""
    nome_empresa: Optional[str] = None
    endereco_sede: Optional[str] = None
    sede_rua: Optional[str] = None
    sede_numero: Optional[str] = None
    sede_bairro: Optional[str] = None
    sede_cidade: Optional[str] = None
    sede_estado: Optional[str] = None
    sede_cep: Optional[str] = None
    telefone: Optional[str] = None
    email: Optional[str] = None
    id: Optional[int] = None


@dataclass
class ServicoSolicitado:
    """Serviço pedido pelo formulário público de orçamento."""
    tipo: Optional[str] = None
    tipo_outro: Optional[str] = None
    servico_id: Optional[int] = None
    servico_nome: Optional[str] = None
    diametro: Optional[str] = None
    profundidade: Optional[str] = None
    profundidade_outro: Optional[str] = None
    quantidade: Optional[str] = None
    quantidade_outro: Optional[str] = None


@dataclass
class SolicitacaoOrcamento:
    """Lead captado pelo site."""
    nome: str
    telefone: str
    servicos: List[ServicoSolicitado] = field(default_factory=list)
    seq: Optional[int] = None
    email: Optional[str] = None
    endereco: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    tipo_local: Optional[str] = None
    tipo_solo: Optional[str] = None
    acesso: Optional[str] = None
    prazo: Optional[str] = None
    diagnostico_spt: Optional[str] = None
    status: str = 'pendente'
    observacoes: Optional[str] = None
    cliente_id: Optional[int] = None
    orcamento_id: Optional[int] = None
    ordem_id: Optional[int] = None
    origem: str = 'website'
    arquivado: bool = False
    arquivado_em: Optional[datetime] = None
    id: Optional[int] = None
    criado_em: Optional[datetime] = None


@dataclass
class CapturaLocalizacao:
    """Token de curta duração para o cliente enviar a localização da obra."""
    token: str
    cliente_id: int
    indice_endereco: int
    expira_em: datetime
    descricao: Optional[str] = None
    tipo_recurso: Optional[str] = None
    status: str = 'pending'
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    endereco: Optional[str] = None
    rua: Optional[str] = None
    numero: Optional[str] = None
    bairro: Optional[str] = None
    cidade: Optional[str] = None
    estado: Optional[str] = None
    cep: Optional[str] = None
    capturado_em: Optional[datetime] = None
    id: Optional[int] = None


# ====================================================================
# OBJETOS DE VALOR (resultados de casos de uso e gateways)
# ====================================================================

@dataclass
class Disponibilidade:
    disponiveis: List[str]
    ocupados: List[str]
    data: date
    duracao_estimada: float
    duracao_texto: str


@dataclass
class Distancia:
    metros: int
    duracao_texto: Optional[str] = None
    distancia_texto: Optional[str] = None
    duracao_segundos: Optional[int] = None


@dataclass
class CotacaoDeslocamento:
    distancia_km: int
    preco: Decimal
    descricao: str
    duracao_texto: Optional[str] = None
    regra_id: Optional[int] = None
    distancia_texto: Optional[str] = None
    duracao_segundos: Optional[int] = None
    endereco_empresa: Optional[str] = None
    endereco_cliente: Optional[str] = None


@dataclass
class EnderecoGeocodificado:
    endereco: Optional[str] = None
    rua: Optional[str] = None
    numero: Optional[str] = None
    bairro: Optional[str] = None
    cidade: Optional[str] = None
    estado: Optional[str] = None
    cep: Optional[str] = None
