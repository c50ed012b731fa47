# piercerhub/core/locales.py

# Сообщения об ошибках (показываются пользователю как есть)
ERROR_DUPLICATE_ENROLLMENT = "Cliente já está matriculado neste plano"
ERROR_DUPLICATE_TEAM_MEMBER = "Este email já está cadastrado na equipe"
ERROR_PERMISSION_DENIED = "Você não tem permissão para acessar esta página"
ERROR_OWNER_ONLY = "Apenas o dono da conta pode gerenciar a equipe"
ERROR_SUBSCRIPTION_REQUIRED = "Sua assinatura expirou. Renove para continuar usando o sistema."
ERROR_REMOTE_SERVICE = "Erro ao comunicar com o serviço externo"
ERROR_CLIENT_NOT_FOUND = "Cliente não encontrado"
ERROR_PLAN_NOT_FOUND = "Plano de fidelidade não encontrado"
ERROR_ENROLLMENT_NOT_FOUND = "Matrícula não encontrada"
ERROR_TEAM_MEMBER_NOT_FOUND = "Membro da equipe não encontrado"
ERROR_NOTIFICATION_NOT_FOUND = "Notificação não encontrada"
ERROR_PLAN_REQUIRED = "Informe o plano para lançar pontos"

# Причины права на награду
REASON_VISITS = "{min_visits} visitas completadas"
REASON_SPENDING = "R$ {min_amount} gastos"
REASON_POINTS = "{min_points} pontos acumulados"
REASON_BIRTHDAY = "Aniversariante do mês"

# Подписи условий и наград для карточки клиента
LABEL_VISITS = "{current}/{target} visitas"
LABEL_SPENDING = "R$ {current:.2f} / R$ {target}"
LABEL_POINTS = "{current}/{target} pontos"
LABEL_BIRTHDAY = "Aniversário do mês"
LABEL_REWARD_DISCOUNT = "{discount_percentage}% de desconto"
LABEL_REWARD_FREE_ITEM = "Item grátis"
LABEL_REWARD_CUSTOM = "Recompensa especial"
LABEL_REWARD_DEFAULT = "Recompensa"

# Уведомления внутри приложения
NOTIFICATION_BIRTHDAY_TITLE = "Aniversariante do mês: {client_name}"
NOTIFICATION_BIRTHDAY_MESSAGE = "{client_name} faz aniversário este mês. Que tal oferecer um desconto?"

# Даты в формате pt-BR
WEEKDAYS_PT_BR = [
    "segunda-feira", "terça-feira", "quarta-feira", "quinta-feira",
    "sexta-feira", "sábado", "domingo",
]
MONTHS_PT_BR = [
    "janeiro", "fevereiro", "março", "abril", "maio", "junho",
    "julho", "agosto", "setembro", "outubro", "novembro", "dezembro",
]
