class BaseErroCore(Exception):
    """Classe base para todas as exceções da Camada Core."""
    status_code = 500

    def __init__(self, message="Erro interno.", detail=None):
        self.message = message
        self.detail = detail
        super().__init__(self.message)

class DadosInvalidosError(BaseErroCore):
    """Erro levantado quando dados inválidos são fornecidos."""
    status_code = 400

    def __init__(self, message="Os dados fornecidos são inválidos.", detail=None):
        super().__init__(message, detail)

class RegraNegocioError(BaseErroCore):
    """Operação recusada por uma regra de negócio (ex.: OS não cancelada)."""
    status_code = 400

    def __init__(self, message="Operação não permitida.", detail=None):
        super().__init__(message, detail)

# ===============================================
# ERROS DE PERSISTÊNCIA E ENTIDADE
# ===============================================

class ItemNaoEncontradoError(BaseErroCore):
    """Erro levantado quando um item (genérico) não é encontrado."""
    status_code = 404

    def __init__(self, message="O item solicitado não foi encontrado.", detail=None):
        super().__init__(message, detail)

class ClienteNaoEncontradoError(ItemNaoEncontradoError):
    def __init__(self, message="Cliente não encontrado", detail=None):
        super().__init__(message, detail)

class OrdemServicoNaoEncontradaError(ItemNaoEncontradoError):
    def __init__(self, message="OS não encontrada", detail=None):
        super().__init__(message, detail)

class OrcamentoNaoEncontradoError(ItemNaoEncontradoError):
    def __init__(self, message="Orçamento não encontrado", detail=None):
        super().__init__(message, detail)

class EquipeNaoEncontradaError(ItemNaoEncontradoError):
    def __init__(self, message="Equipe não encontrada", detail=None):
        super().__init__(message, detail)

class SolicitacaoNaoEncontradaError(ItemNaoEncontradoError):
    def __init__(self, message="Solicitação não encontrada", detail=None):
        super().__init__(message, detail)

class ConflitoError(BaseErroCore):
    """Conflito com o estado atual (registro duplicado, caixa já aberto...)."""
    status_code = 409

    def __init__(self, message="O registro conflita com dados existentes.", detail=None):
        super().__init__(message, detail)

class DocumentoDuplicadoError(ConflitoError):
    def __init__(self, message="Cliente já cadastrado com este documento.", detail=None):
        super().__init__(message, detail)

class TransacaoDuplicadaError(ConflitoError):
    def __init__(self, message="Já existe uma transação de entrada para esta OS.", detail=None):
        super().__init__(message, detail)

# ===============================================
# ERROS DE ACESSO E SERVIÇOS EXTERNOS
# ===============================================

class CredenciaisInvalidasError(BaseErroCore):
    status_code = 401

    def __init__(self, message="Credenciais inválidas.", detail=None):
        super().__init__(message, detail)

class AcessoNegadoError(BaseErroCore):
    status_code = 403

    def __init__(self, message="Acesso negado.", detail=None):
        super().__init__(message, detail)

class ServicoExternoError(BaseErroCore):
    """Falha na comunicação com um serviço externo (mapas, geocodificação)."""
    status_code = 502

    def __init__(self, message="Falha ao consultar serviço externo.", detail=None):
        super().__init__(message, detail)
