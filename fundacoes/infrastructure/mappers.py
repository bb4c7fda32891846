"""
Mapeadores (Mappers) para converter entre:
1. Modelos do Django ORM
2. Entidades de Domínio (fundacoes.core.entities)
"""
from dataclasses import asdict, fields
from datetime import datetime
from typing import List

from django.apps import apps
from django.utils import timezone

# Importa as entidades do Core
from fundacoes.core.entities import (
    Cliente as ClienteEntity,
    EnderecoCliente as EnderecoClienteEntity,
    LinhaServico as LinhaServicoEntity,
    OrdemServico as OrdemServicoEntity,
    Orcamento as OrcamentoEntity,
    Equipe as EquipeEntity,
    TransacaoCaixa as TransacaoCaixaEntity,
    Caixa as CaixaEntity,
    ItemCatalogo as ItemCatalogoEntity,
    VariacaoPreco as VariacaoPrecoEntity,
    RegraDeslocamento as RegraDeslocamentoEntity,
    Configuracao as ConfiguracaoEntity,
    SolicitacaoOrcamento as SolicitacaoOrcamentoEntity,
    ServicoSolicitado as ServicoSolicitadoEntity,
    CapturaLocalizacao as CapturaLocalizacaoEntity,
)


# ====================================================================
# Uso de apps.get_model para evitar dependências circulares
# ====================================================================

def get_model(model_name: str):
    """Retorna um modelo do Django de forma segura (lazy loading)."""
    return apps.get_model('infrastructure', model_name)


def _local(valor):
    """Datas com fuso são entregues ao Core no horário local do projeto."""
    if isinstance(valor, datetime) and timezone.is_aware(valor):
        return timezone.localtime(valor)
    return valor


class BaseMapper:
    """
    Copia os campos homônimos entre o dataclass da entidade e as colunas do model.
    Subclasses completam as listas aninhadas (endereços, serviços, variações).
    """
    modelo = None
    entidade = None
    ignorar = ()

    @classmethod
    def model_class(cls):
        return get_model(cls.modelo)

    @classmethod
    def _colunas(cls):
        return {campo.attname for campo in cls.model_class()._meta.concrete_fields}

    @classmethod
    def to_entity(cls, model):
        """Converte um Model Django para a Entidade do Core."""
        if model is None:
            return None
        colunas = cls._colunas()
        dados = {
            campo.name: _local(getattr(model, campo.name))
            for campo in fields(cls.entidade)
            if campo.name in colunas and campo.name not in cls.ignorar
        }
        return cls.entidade(**dados)

    @classmethod
    def to_model(cls, entity, model=None):
        """Aplica a Entidade sobre um Model novo ou existente (sem salvar)."""
        model = model or cls.model_class()()
        colunas = cls._colunas()
        for campo in fields(entity):
            nome = campo.name
            if nome in ('id', 'criado_em') or nome in cls.ignorar or nome not in colunas:
                continue
            setattr(model, nome, getattr(entity, nome))
        return model


# ====================================================================
# CLIENTES
# ====================================================================

class EnderecoClienteMapper(BaseMapper):
    modelo = 'EnderecoCliente'
    entidade = EnderecoClienteEntity


class ClienteMapper(BaseMapper):
    modelo = 'Cliente'
    entidade = ClienteEntity

    @classmethod
    def to_entity(cls, model):
        entity = super().to_entity(model)
        if entity is None:
            return None
        entity.senha_hash = model.senha
        entity.enderecos = [EnderecoClienteMapper.to_entity(e) for e in model.enderecos.all()]
        return entity

    @classmethod
    def to_model(cls, entity, model=None):
        model = super().to_model(entity, model)
        model.senha = entity.senha_hash
        return model


# ====================================================================
# LINHAS DE SERVIÇO, ORDENS E ORÇAMENTOS
# ====================================================================

class ServicoOrdemMapper(BaseMapper):
    modelo = 'ServicoOrdem'
    entidade = LinhaServicoEntity


class ServicoOrcamentoMapper(BaseMapper):
    modelo = 'ServicoOrcamento'
    entidade = LinhaServicoEntity


class OrdemServicoMapper(BaseMapper):
    modelo = 'OrdemServico'
    entidade = OrdemServicoEntity

    @classmethod
    def to_entity(cls, model):
        entity = super().to_entity(model)
        if entity is None:
            return None
        entity.servicos = [ServicoOrdemMapper.to_entity(s) for s in model.servicos.all()]
        return entity


class OrcamentoMapper(BaseMapper):
    modelo = 'Orcamento'
    entidade = OrcamentoEntity

    @classmethod
    def to_entity(cls, model):
        entity = super().to_entity(model)
        if entity is None:
            return None
        entity.servicos = [ServicoOrcamentoMapper.to_entity(s) for s in model.servicos.all()]
        return entity


# ====================================================================
# EQUIPES, CAIXA E CATÁLOGO
# ====================================================================

class EquipeMapper(BaseMapper):
    modelo = 'Equipe'
    entidade = EquipeEntity


class TransacaoCaixaMapper(BaseMapper):
    modelo = 'TransacaoCaixa'
    entidade = TransacaoCaixaEntity


class CaixaMapper(BaseMapper):
    modelo = 'Caixa'
    entidade = CaixaEntity


class VariacaoPrecoMapper(BaseMapper):
    modelo = 'VariacaoPreco'
    entidade = VariacaoPrecoEntity


class ItemCatalogoMapper(BaseMapper):
    modelo = 'ItemCatalogo'
    entidade = ItemCatalogoEntity

    @classmethod
    def to_entity(cls, model):
        entity = super().to_entity(model)
        if entity is None:
            return None
        entity.variacoes = [VariacaoPrecoMapper.to_entity(v) for v in model.variacoes.all()]
        return entity


class RegraDeslocamentoMapper(BaseMapper):
    modelo = 'RegraDeslocamento'
    entidade = RegraDeslocamentoEntity


class ConfiguracaoMapper(BaseMapper):
    modelo = 'Configuracao'
    entidade = ConfiguracaoEntity


# ====================================================================
# CAPTAÇÃO
# ====================================================================

class SolicitacaoOrcamentoMapper(BaseMapper):
    """Os serviços pedidos ficam em uma coluna JSON."""
    modelo = 'SolicitacaoOrcamento'
    entidade = SolicitacaoOrcamentoEntity
    ignorar = ('servicos',)

    CAMPOS_SERVICO = {campo.name for campo in fields(ServicoSolicitadoEntity)}

    @classmethod
    def servicos_para_entidade(cls, servicos: List[dict]) -> List[ServicoSolicitadoEntity]:
        return [
            ServicoSolicitadoEntity(**{k: v for k, v in item.items() if k in cls.CAMPOS_SERVICO})
            for item in (servicos or [])
        ]

    @classmethod
    def to_entity(cls, model):
        entity = super().to_entity(model)
        if entity is None:
            return None
        entity.servicos = cls.servicos_para_entidade(model.servicos)
        return entity

    @classmethod
    def to_model(cls, entity, model=None):
        model = super().to_model(entity, model)
        model.servicos = [asdict(servico) for servico in entity.servicos]
        return model


class CapturaLocalizacaoMapper(BaseMapper):
    modelo = 'CapturaLocalizacao'
    entidade = CapturaLocalizacaoEntity
