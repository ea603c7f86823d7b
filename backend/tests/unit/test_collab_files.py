from __future__ import annotations

import pytest

from teamhub.collab.domain import files_service, models
from teamhub.collab.domain.exceptions import ForbiddenError, NotFoundError, ValidationFailedError
from teamhub.collab.schemas import dto
from teamhub.settings import settings


async def _group(store, **configuracoes):
	admin = store.users.add("Ana", "ana@x.com")
	member = store.users.add("Bia", "bia@x.com")
	group = await store.group_service.create_group(
		store.auth(admin),
		dto.GroupCreateRequest(nome="Cálculo", configuracoes=configuracoes),
	)
	await store.groups.add_member(group.id, member.id, models.LEVEL_MEMBER)
	return admin, member, group


def _pdf(**overrides) -> dto.FileCreateRequest:
	data = dict(
		nome="Lista 1",
		nome_original="lista1.pdf",
		tipo_mime="application/pdf",
		tamanho=2048,
		url="https://files.example.com/lista1.pdf",
	)
	data.update(overrides)
	return dto.FileCreateRequest(**data)


@pytest.mark.parametrize(
	"mime, allowed",
	[
		("application/pdf", True),
		("image/png", True),
		("application/vnd.openxmlformats-officedocument.wordprocessingml.document", True),
		("application/x-msdownload", False),
		("application/javascript", False),
		("pdf", False),
	],
)
def test_mime_allowlist(mime, allowed):
	assert files_service.mime_allowed(mime) is allowed


def test_tags_are_lowercased_and_deduplicated():
	assert files_service.normalize_tags([" Prova ", "prova", "", "Resumo"]) == ["prova", "resumo"]


def test_folder_is_trimmed_of_slashes():
	assert files_service.normalize_folder("/listas/2024/") == "listas/2024"
	assert files_service.normalize_folder(" / ") is None


@pytest.mark.asyncio
async def test_register_file_with_storage_key(store, monkeypatch):
	monkeypatch.setattr(settings, "storage_base_url", "https://bucket.example.com/")
	_, member, group = await _group(store)

	file = await store.file_service.register_file(
		store.auth(member),
		group.id,
		_pdf(url=None, chave_armazenamento="grupos/x/lista1.pdf", tags=["P1", "p1"], pasta="/listas/"),
	)

	assert file.url == "https://bucket.example.com/grupos/x/lista1.pdf"
	assert file.tags == ["p1"]
	assert file.pasta == "listas"
	assert file.versao == 1
	assert file.arquivo_pai_id is None


@pytest.mark.asyncio
async def test_register_collects_rule_violations(store):
	_, member, group = await _group(store, tamanho_max_arquivo_mb=1)

	with pytest.raises(ValidationFailedError) as excinfo:
		await store.file_service.register_file(
			store.auth(member),
			group.id,
			_pdf(
				tipo_mime="application/x-msdownload",
				tamanho=2 * 1024 * 1024,
				pasta="a|b",
				tags=[f"t{i}" for i in range(11)],
			),
		)
	assert len(excinfo.value.errors) == 4


@pytest.mark.asyncio
async def test_register_requires_url_or_key(store):
	_, member, group = await _group(store)
	with pytest.raises(ValidationFailedError):
		await store.file_service.register_file(store.auth(member), group.id, _pdf(url=None))


@pytest.mark.asyncio
async def test_group_can_disable_files(store):
	_, member, group = await _group(store, permite_arquivos=False)
	with pytest.raises(ForbiddenError):
		await store.file_service.register_file(store.auth(member), group.id, _pdf())


@pytest.mark.asyncio
async def test_only_uploader_or_moderators_manage_files(store):
	admin, member, group = await _group(store)
	other = store.users.add("Caio", "caio@x.com")
	await store.groups.add_member(group.id, other.id, models.LEVEL_MEMBER)
	file = await store.file_service.register_file(store.auth(member), group.id, _pdf())

	with pytest.raises(ForbiddenError):
		await store.file_service.update_file(store.auth(other), file.id, dto.FileUpdateRequest(nome="X"))

	renamed = await store.file_service.update_file(store.auth(admin), file.id, dto.FileUpdateRequest(nome="Lista 1 (final)"))
	assert renamed.nome == "Lista 1 (final)"

	await store.file_service.delete_file(store.auth(member), file.id)
	with pytest.raises(NotFoundError):
		await store.file_service.get_file(store.auth(member), file.id)


@pytest.mark.asyncio
async def test_versions_chain_to_the_root(store):
	_, member, group = await _group(store)
	root = await store.file_service.register_file(store.auth(member), group.id, _pdf())

	second = await store.file_service.create_version(
		store.auth(member), root.id, dto.FileVersionRequest(url="https://files.example.com/v2.pdf", tamanho=4096)
	)
	third = await store.file_service.create_version(
		store.auth(member), second.id, dto.FileVersionRequest(url="https://files.example.com/v3.pdf", tamanho=1024)
	)

	assert (second.versao, third.versao) == (2, 3)
	assert second.arquivo_pai_id == root.id
	assert third.arquivo_pai_id == root.id

	history = await store.file_service.list_versions(store.auth(member), third.id)
	assert [item.versao for item in history] == [3, 2, 1]


@pytest.mark.asyncio
async def test_version_must_keep_mime_and_carry_content(store):
	_, member, group = await _group(store)
	root = await store.file_service.register_file(store.auth(member), group.id, _pdf())

	with pytest.raises(ValidationFailedError) as excinfo:
		await store.file_service.create_version(
			store.auth(member), root.id, dto.FileVersionRequest(tipo_mime="image/png")
		)
	assert len(excinfo.value.errors) == 3


@pytest.mark.asyncio
async def test_download_counter_and_outsider_access(store):
	_, member, group = await _group(store)
	outsider = store.users.add("Caio", "caio@x.com")
	file = await store.file_service.register_file(store.auth(member), group.id, _pdf())

	await store.file_service.register_download(store.auth(member), file.id)
	second = await store.file_service.register_download(store.auth(member), file.id)
	assert second.downloads == 2
	assert second.url == file.url

	with pytest.raises(ForbiddenError):
		await store.file_service.register_download(store.auth(outsider), file.id)


@pytest.mark.asyncio
async def test_folders_summary(store):
	_, member, group = await _group(store)
	await store.file_service.register_file(store.auth(member), group.id, _pdf(pasta="listas"))
	await store.file_service.register_file(store.auth(member), group.id, _pdf(pasta="listas", tamanho=100))
	await store.file_service.register_file(store.auth(member), group.id, _pdf())

	folders = await store.file_service.list_folders(store.auth(member), group.id)
	assert folders == [dto.FolderResponse(pasta="listas", arquivos=2, tamanho_total=2148)]
